"""Database URI and engine options per environment."""
import os

from sqlalchemy.pool import QueuePool

DEFAULT_SQLITE_URI = "sqlite:///deploy_logger.sqlite"

# Environment -> env vars checked in order for the database URL
DATABASE_URL_VARS = {
    "local": ("LOCAL_DATABASE_URL",),
    "sandbox": ("SANDBOX_DATABASE_URL",),
    "production": ("PRODUCTION_DATABASE_URL", "DATABASE_URL"),
}


def normalize_database_url(url: str) -> str:
    # Heroku-style URLs still use the scheme SQLAlchemy 1.4 dropped
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def postgres_engine_options() -> dict:
    return {
        "poolclass": QueuePool,
        "pool_pre_ping": True,
        "pool_recycle": 280,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "connect_args": {
            "connect_timeout": 10,
            "application_name": "deploy_logger",
            "options": "-c statement_timeout=30000",
        },
    }


def sqlite_engine_options() -> dict:
    """
    SQLite connections are shared across request threads; readers wait on a
    busy database instead of failing while the single writer commits.
    """
    return {"connect_args": {"check_same_thread": False, "timeout": 15}}


def engine_options_for(uri: str) -> dict:
    if uri.startswith("sqlite"):
        return sqlite_engine_options()
    return postgres_engine_options()


def resolve_database_uri(environment: str) -> str:
    """
    Raises:
        ValueError: If a non-local environment has no database URL configured
    """
    names = DATABASE_URL_VARS.get(environment, DATABASE_URL_VARS["local"])
    for name in names:
        if os.environ.get(name):
            return normalize_database_url(os.environ[name])

    if environment in ("local", "testing"):
        return DEFAULT_SQLITE_URI
    raise ValueError(f"{' or '.join(names)} must be set for the {environment} environment")


def configure_database(app):
    """Fill SQLALCHEMY_* settings unless the config class already pins a URI."""
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config.setdefault("SQLALCHEMY_ECHO", False)

    if app.config.get("SQLALCHEMY_DATABASE_URI"):
        return

    uri = resolve_database_uri(app.config.get("ENV", "local"))
    app.config["SQLALCHEMY_DATABASE_URI"] = uri
    app.config.setdefault("SQLALCHEMY_ENGINE_OPTIONS", engine_options_for(uri))
