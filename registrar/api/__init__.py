# Registrar HTTP routes
