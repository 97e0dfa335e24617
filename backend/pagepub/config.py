import os
from dotenv import load_dotenv

load_dotenv()


def _csv(name, default):
    raw = os.getenv(name)
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Publishing
    PUBLISH_ISOLATION_LEVEL = os.getenv("PUBLISH_ISOLATION_LEVEL", "SERIALIZABLE")
    SNAPSHOT_COMPRESSION_THRESHOLD = int(os.getenv("SNAPSHOT_COMPRESSION_THRESHOLD", 64 * 1024))
    VERSION_RETENTION_KEEP = int(os.getenv("VERSION_RETENTION_KEEP", 10))

    # Rendering
    RENDER_CACHE_SIZE = int(os.getenv("RENDER_CACHE_SIZE", 256))
    DEFAULT_LANGUAGE_ID = int(os.getenv("DEFAULT_LANGUAGE_ID", 2))
    PROPERTY_LANGUAGE_ID = 1
    DATA_TABLE_PREFIX = os.getenv("DATA_TABLE_PREFIX", "data_")
    # Exposed to sections as {{globals.*}}
    RENDER_GLOBALS = {}

    # Access
    DRAFT_PREVIEW_ROLES = _csv("DRAFT_PREVIEW_ROLES", ("admin", "editor"))
    VERSION_ADMIN_ROLES = _csv("VERSION_ADMIN_ROLES", ("admin", "editor"))

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "text")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///pagepub-dev.db")


class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json")


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"
    PUBLISH_ISOLATION_LEVEL = None
    SNAPSHOT_COMPRESSION_THRESHOLD = 2048
    LOG_LEVEL = "DEBUG"


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
