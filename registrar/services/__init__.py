# Registrar services
