import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Version control engine
    SNAPSHOT_INTERVAL = _int_env("SNAPSHOT_INTERVAL", 5)
    CHECKPOINT_INTERVAL = _int_env("CHECKPOINT_INTERVAL", 10)
    VERSION_COMMIT_RETRIES = _int_env("VERSION_COMMIT_RETRIES", 3)
    # 0 disables automatic retention after save
    VERSION_RETENTION_COUNT = _int_env("VERSION_RETENTION_COUNT", 20)

class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEV_DATABASE_URI", "sqlite:///content_history.db")

class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET_KEY = "testing-secret-key-with-enough-length"
    VERSION_RETENTION_COUNT = 0

class ProductionConfig(BaseConfig):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI")

config_by_name = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig
}
