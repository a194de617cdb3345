from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings for the GreenWatt energy core"""

    # Basic settings
    APP_NAME: str = "GreenWatt Energy Core"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    PORT: int = 8000

    # Device store settings
    STORE_BACKEND: str = "redis"  # "redis" or "memory"
    REDIS_URL: str = "redis://redis:6379"
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0

    # JWT settings (tokens are issued by the external identity provider)
    JWT_SECRET_KEY: str = "your-super-secret-jwt-key-here-change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Security settings
    ALLOWED_HOSTS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Aggregation settings
    TICK_INTERVAL_SECONDS: float = 5.0
    SAMPLE_BUFFER_SIZE: int = 50
    KWH_RATE: float = 0.12  # currency units per kWh
    BASELINE_LOAD_KW: float = 3.0
    CO2_KG_PER_KWH: float = 0.4
    TREND_EPSILON: float = 1e-6

    # Device registry settings
    FAVORITES_LIMIT: int = 8
    OFF_DEVICE_WEIGHT: float = 0.3
    SYNC_MAX_ATTEMPTS: int = 3
    SYNC_BACKOFF_SECONDS: float = 0.5

    # Insight settings
    ECO_EFFICIENCY_THRESHOLD: int = 70

    # Demo settings
    DEMO_MODE: bool = True
    SEED_DEMO_DEVICES: bool = True
    PERTURBATION_KW: float = 0.5
    RANDOM_SEED: Optional[int] = None

    class Config:
        env_file = ".env"
        case_sensitive = True


# Create settings instance
settings = Settings()
