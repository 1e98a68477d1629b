import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default):
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Settings shared by every environment; each can be overridden from .env."""
    ENV = "local"
    DEBUG = False

    # Seconds a mutation waits for the write lock before failing with a 500
    WRITE_LOCK_TIMEOUT_SECONDS = float(os.environ.get("WRITE_LOCK_TIMEOUT_SECONDS", "5"))
    DEFAULT_MAX_DEPLOYS = int(os.environ.get("DEFAULT_MAX_DEPLOYS", "10"))

    AUTO_CREATE_TABLES = _env_flag("AUTO_CREATE_TABLES", "true")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FILE = os.environ.get("LOG_FILE")
    LOG_JSON = _env_flag("LOG_JSON", "false")

    # Comma-separated list, or * for any origin
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")


class LocalConfig(Config):
    ENV = "local"
    DEBUG = True


class SandboxConfig(Config):
    ENV = "sandbox"
    LOG_JSON = _env_flag("LOG_JSON", "true")


class ProductionConfig(Config):
    ENV = "production"
    LOG_JSON = _env_flag("LOG_JSON", "true")
    # Schema changes in production are applied deliberately
    AUTO_CREATE_TABLES = _env_flag("AUTO_CREATE_TABLES", "false")


class TestingConfig(Config):
    """In-memory SQLite, tables created per application."""
    ENV = "testing"
    TESTING = True
    AUTO_CREATE_TABLES = True
    LOG_FILE = None
    LOG_LEVEL = "WARNING"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WRITE_LOCK_TIMEOUT_SECONDS = 2


_CONFIGS = {
    LocalConfig: ("local", "development", "dev"),
    SandboxConfig: ("sandbox", "staging", "stage"),
    ProductionConfig: ("production", "prod"),
    TestingConfig: ("testing", "test"),
}


def get_config():
    """Pick the config class named by FLASK_ENV or ENVIRONMENT; unknown names fall back to local."""
    env = (os.environ.get("FLASK_ENV") or os.environ.get("ENVIRONMENT") or "local").strip().lower()
    for config_class, aliases in _CONFIGS.items():
        if env in aliases:
            return config_class
    return LocalConfig
