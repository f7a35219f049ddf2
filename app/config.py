import os

from dotenv import find_dotenv, load_dotenv

# class attributes below read the environment at import time
load_dotenv(find_dotenv(usecwd=True))


def _flag(name, default="0"):
    return (os.getenv(name, default) or "").lower() in ("1", "true", "yes")


class BaseConfig:
    JSON_SORT_KEYS = False
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    IS_PRODUCTION = False
    CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "*")
    RATELIMIT_STORAGE_URL = os.getenv("RATELIMIT_STORAGE_URL", "memory://")
    ORDER_LIMIT_PER_IP = os.getenv("ORDER_LIMIT_PER_IP", "20 per hour")
    PAYOUT_LIMIT_PER_IP = os.getenv("PAYOUT_LIMIT_PER_IP", "10 per hour")
    JWT_SECRET = os.getenv("JWT_SECRET", "dev-insecure-jwt-key")
    ACCESS_TOKEN_LIFETIME_MIN = int(os.getenv("ACCESS_TOKEN_LIFETIME_MIN", 15))
    REFRESH_TOKEN_LIFETIME_DAYS = int(os.getenv("REFRESH_TOKEN_LIFETIME_DAYS", 30))
    OTEL_SERVICE_NAME = os.getenv("OTEL_SERVICE_NAME", "escrow-settlement")
    OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318/v1/traces")

    # Settlement
    BANK_ENCRYPTION_KEY = os.getenv("BANK_ENCRYPTION_KEY")
    ALLOW_TEST_CARDS = _flag("ALLOW_TEST_CARDS", "1")
    PROOF_REUPLOAD_WINDOW_MIN = int(os.getenv("PROOF_REUPLOAD_WINDOW_MIN", 15))
    DEFAULT_MINIMUM_PAYOUT = os.getenv("DEFAULT_MINIMUM_PAYOUT", "10.00")
    CUSTOMER_STARTING_BALANCE = os.getenv("CUSTOMER_STARTING_BALANCE", "1000000.00")
    REFUND_ESCROW_ON_CANCEL = _flag("REFUND_ESCROW_ON_CANCEL")
    PAYMENT_RAIL_URL = os.getenv("PAYMENT_RAIL_URL")
    PAYMENT_RAIL_API_KEY = os.getenv("PAYMENT_RAIL_API_KEY")
    PAYMENT_RAIL_TIMEOUT = float(os.getenv("PAYMENT_RAIL_TIMEOUT", 10))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-insecure-key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///dev.db")


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = "test-key"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    RATELIMIT_ENABLED = False
    BANK_ENCRYPTION_KEY = "0f1e2d3c4b5a69788796a5b4c3d2e1f00112233445566778899aabbccddeeff0"
    PAYMENT_RAIL_URL = None


class ProductionConfig(BaseConfig):
    DEBUG = False
    TESTING = False
    IS_PRODUCTION = True
    ALLOW_TEST_CARDS = False
    SECRET_KEY = os.getenv("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL")

    @staticmethod
    def validate():
        missing = []
        for name in ("SECRET_KEY", "DATABASE_URL", "JWT_SECRET", "BANK_ENCRYPTION_KEY"):
            if not os.getenv(name):
                missing.append(name)
        if missing:
            raise RuntimeError(
                f"Missing required env vars in production: {', '.join(missing)}"
            )


def get_config_class():
    env = os.getenv("APP_ENV", "development").lower()
    if env == "production":
        ProductionConfig.validate()
        return ProductionConfig
    if env == "testing":
        return TestingConfig
    return DevelopmentConfig
