from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Login Risk Engine"
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Admin auth (JWT)
    ADMIN_SECRET_KEY: str = "change-me-login-risk-admin"
    ADMIN_TOKEN_ALGORITHM: str = "HS256"
    ADMIN_TOKEN_EXPIRE_MINUTES: int = 480

    # Anomaly model
    MODEL_MAX_SAMPLES: int = 1000
    MODEL_MIN_SAMPLES: int = 10
    MODEL_RETRAIN_THRESHOLD: int = 50
    MODEL_SEED_ON_STARTUP: bool = True
    MODEL_RANDOM_SEED: Optional[int] = None

    # Default security rules
    DEFAULT_BLOCK_THRESHOLD: int = 80
    DEFAULT_CHALLENGE_THRESHOLD: int = 60
    DEFAULT_ALERT_THRESHOLD: int = 40
    DEFAULT_ALLOW_THRESHOLD: int = 0

    class Config:
        env_file = ".env"


settings = Settings()
