# Registrar Models
from registrar.models.database import Base, init_db, create_async_db_engine, create_async_session_factory
from registrar.models.parameter import Parameter, ParameterType
from registrar.models.user import User, Phone

__all__ = [
    "Base",
    "init_db",
    "create_async_db_engine",
    "create_async_session_factory",
    "Parameter",
    "ParameterType",
    "User",
    "Phone",
]
