from pydantic import BaseModel
import os
import logging
from datetime import timedelta

DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseModel):
    # Environment
    ENV: str = os.getenv("ENV", "dev")  # dev, test, staging, prod
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./globalunlock.db")
    AUTO_CREATE_TABLES: bool = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"  # dev convenience, migrations in prod
    SEED_ON_STARTUP: bool = os.getenv("SEED_ON_STARTUP", "false").lower() == "true"

    # Session tokens are issued by the auth provider; we only verify them
    JWT_SECRET: str = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
    ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_AUDIENCE: str = os.getenv("JWT_AUDIENCE", "")  # empty = audience not checked
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
    ADMIN_ROLE: str = os.getenv("ADMIN_ROLE", "admin")

    # Locker singleton row key
    LOCKER_ID: int = int(os.getenv("LOCKER_ID", "1"))

    # CORS (comma-separated, "*" allowed outside prod only)
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "*")

    # Realtime push
    REALTIME_HEARTBEAT_SECONDS: float = float(os.getenv("REALTIME_HEARTBEAT_SECONDS", "15"))
    REALTIME_QUEUE_SIZE: int = int(os.getenv("REALTIME_QUEUE_SIZE", "100"))

    # Client polling fallback
    POLL_INTERVAL_SECONDS: float = float(os.getenv("POLL_INTERVAL_SECONDS", "10"))
    DEGRADED_GRACE_SECONDS: float = float(os.getenv("DEGRADED_GRACE_SECONDS", "5"))

    @property
    def database_url(self) -> str:
        return self.DATABASE_URL

    @property
    def allowed_origins(self) -> list:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


settings = Settings()
ACCESS_TOKEN_EXPIRE = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def validate_config(config: Settings = settings) -> None:
    """Validate configuration at startup. Raises ValueError if invalid."""
    logger = logging.getLogger(__name__)

    if config.POLL_INTERVAL_SECONDS <= 0:
        raise ValueError("POLL_INTERVAL_SECONDS must be positive")
    if config.REALTIME_QUEUE_SIZE <= 0:
        raise ValueError("REALTIME_QUEUE_SIZE must be positive")

    # Production safety gates
    if config.ENV.lower() in {"prod", "production"}:
        if not config.JWT_SECRET or config.JWT_SECRET == DEFAULT_JWT_SECRET:
            error_msg = (
                "CRITICAL SECURITY ERROR: JWT_SECRET must be set and not use default value in production."
            )
            logger.error(error_msg)
            raise ValueError(error_msg)

        if config.database_url.startswith("sqlite"):
            error_msg = (
                "CRITICAL: SQLite database is not supported in production. "
                "Please use PostgreSQL."
            )
            logger.error(error_msg)
            raise ValueError(error_msg)

        if "*" in config.allowed_origins:
            error_msg = "ALLOWED_ORIGINS cannot be '*' in production"
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.info("Production safety gates validated")

    logger.info("Configuration validation complete")
    logger.info(f"Environment: {config.ENV}")
    logger.info(f"Admin role claim: {config.ADMIN_ROLE}")
