"""
Registrar main application entry point.
"""

import asyncio
import logging
from pathlib import Path
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from registrar import __version__
from registrar.config import load_config, Config
from registrar.errors import PolicyInconsistent, PolicyUnavailable
from registrar.models import create_async_session_factory, init_db
from registrar.services.configuration import ConfigurationService
from registrar.services.policy_engine import PolicyEngine
from registrar.services.policy_store import PolicyStore
from registrar.services.tokens import TokenService
from registrar.services.users import UserService
from registrar.api import configurations as configurations_api
from registrar.api import users as users_api
from registrar.api.errors import register_exception_handlers


logger = logging.getLogger(__name__)


async def build_policy(config: Config, session_factory) -> tuple[PolicyStore, PolicyEngine]:
    """Create the policy store and engine, seeding and compiling the policy."""
    store = PolicyStore(session_factory)
    policy_engine = PolicyEngine(store)

    if config.policy.seed_defaults:
        await store.init_defaults(config.policy.seed)

    try:
        await policy_engine.recompile()
    except (PolicyUnavailable, PolicyInconsistent) as e:
        # Registrations fail until an admin repairs the policy
        logger.error(f"Password policy could not be compiled at startup: {e}")

    return store, policy_engine


def create_app(config: Config) -> FastAPI:
    """Create the Registrar FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting Registrar server...")

        db_engine = await init_db(config.database)
        session_factory = create_async_session_factory(db_engine)

        store, policy_engine = await build_policy(config, session_factory)
        token_service = TokenService(config.auth)
        configuration_service = ConfigurationService(
            store, policy_engine, request_timeout=config.policy.request_timeout
        )
        user_service = UserService(session_factory, policy_engine, token_service)

        configurations_api.set_dependencies(configuration_service, token_service)
        users_api.set_dependencies(user_service)

        app.state.db_engine = db_engine
        app.state.session_factory = session_factory
        app.state.policy_store = store
        app.state.policy_engine = policy_engine
        app.state.token_service = token_service

        yield

        logger.info("Shutting down Registrar server...")
        await db_engine.dispose()

    app = FastAPI(
        title="Registrar",
        description="User registration with a runtime-configurable password policy",
        version=__version__,
        lifespan=lifespan,
    )

    register_exception_handlers(app)
    app.include_router(users_api.router)
    app.include_router(configurations_api.router)

    return app


async def run_server(config: Config):
    """Run the HTTP server."""
    app = create_app(config)

    server_config = uvicorn.Config(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )
    server = uvicorn.Server(server_config)

    logger.info(f"Registrar server: http://{config.server.host}:{config.server.port}")
    await server.serve()


def _load_config_or_report(path: str) -> Config | None:
    config_path = Path(path)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}")
        print("Please create a config.yaml file or specify a different path with -c")
        return None
    return load_config(config_path)


def _setup_logging(config: Config) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def cmd_serve(args):
    """Run the HTTP server."""
    config = _load_config_or_report(args.config)
    if config is None:
        return 1

    if not config.auth.jwt_secret:
        print("Error: auth.jwt_secret must be set in the config file")
        return 1

    _setup_logging(config)

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")

    return 0


async def _check_password(config: Config, password: str) -> tuple[bool, str]:
    db_engine = await init_db(config.database)
    try:
        store = PolicyStore(create_async_session_factory(db_engine))
        policy_engine = PolicyEngine(store)
        is_valid = await policy_engine.validate(password)
        return is_valid, await policy_engine.describe()
    finally:
        await db_engine.dispose()


def cmd_check_password(args):
    """Check a password against the stored password policy."""
    import getpass

    config = _load_config_or_report(args.config)
    if config is None:
        return 1

    try:
        password = getpass.getpass("Enter password: ")
    except KeyboardInterrupt:
        print("\nCancelled")
        return 1

    try:
        is_valid, pattern = asyncio.run(_check_password(config, password))
    except (PolicyUnavailable, PolicyInconsistent) as e:
        print(f"Error: {e}")
        return 1

    print(f"Pattern: {pattern}")
    print("Password is valid" if is_valid else "Password does not meet requirements")
    return 0 if is_valid else 2


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Registrar user account service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command (default)
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )

    # check-password command
    check_parser = subparsers.add_parser(
        "check-password", help="Check a password against the stored policy"
    )
    check_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )

    args = parser.parse_args()

    # Default to serve if no command specified
    if args.command is None:
        args.command = "serve"
        args.config = "config.yaml"

    if args.command == "serve":
        return cmd_serve(args)
    elif args.command == "check-password":
        return cmd_check_password(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    exit(main())
