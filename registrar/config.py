"""
Registrar configuration loader.

Configuration is split into two parts:
- Config: Static configuration from config.yaml (server, database, auth, policy, logging)
- Password policy: Dynamic configuration from database (see services/policy_store.py)
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml


# Values written to the parameter table on first start when it holds no
# password policy yet.
DEFAULT_SEED = {
    "password.min.length": "8",
    "password.max.length": "30",
    "password.min.uppercase": "1",
    "password.min.lowercase": "1",
    "password.min.digits": "1",
    "password.min.special": "1",
    "password.allowed.special": "-.#$%&",
}


@dataclass
class ServerConfig:
    port: int = 8080
    host: str = "0.0.0.0"


@dataclass
class DatabaseConfig:
    url: str = "sqlite+aiosqlite:///./data/registrar.db"


@dataclass
class AuthConfig:
    jwt_secret: str = ""
    jwt_expire_hours: int = 24


@dataclass
class PolicyConfig:
    request_timeout: float = 5.0
    seed_defaults: bool = True
    seed: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SEED))


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class Config:
    """Static configuration loaded from config.yaml."""
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(config_path: str | Path) -> Config:
    """Load static configuration from a YAML file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    config = Config()

    # Server
    if "server" in data:
        server_data = data["server"]
        config.server = ServerConfig(
            port=server_data.get("port", 8080),
            host=server_data.get("host", "0.0.0.0"),
        )

    # Database
    if "database" in data:
        db_data = data["database"]
        config.database = DatabaseConfig(
            url=db_data.get("url", "sqlite+aiosqlite:///./data/registrar.db"),
        )

    # Auth
    if "auth" in data:
        auth_data = data["auth"]
        config.auth = AuthConfig(
            jwt_secret=auth_data.get("jwt_secret", ""),
            jwt_expire_hours=auth_data.get("jwt_expire_hours", 24),
        )

    # Password policy
    if "policy" in data:
        policy_data = data["policy"]
        seed = dict(DEFAULT_SEED)
        # YAML may hand back ints for numeric values; the table stores text
        for key, value in (policy_data.get("seed") or {}).items():
            seed[key] = str(value)
        config.policy = PolicyConfig(
            request_timeout=float(policy_data.get("request_timeout", 5.0)),
            seed_defaults=bool(policy_data.get("seed_defaults", True)),
            seed=seed,
        )

    # Logging
    if "logging" in data:
        logging_data = data["logging"]
        config.logging = LoggingConfig(
            level=logging_data.get("level", "INFO"),
        )

    return config
