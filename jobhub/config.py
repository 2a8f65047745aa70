from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "postgresql+asyncpg://jobhub:jobhub_dev@db:5432/jobhub"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # Security
    SECRET_KEY: str = "dev-secret-key-not-for-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    ALLOWED_ORIGINS: str = "*"

    # Stripe
    STRIPE_SECRET_KEY: str = "mock_stripe_key"
    STRIPE_PUBLISHABLE_KEY: str = "mock_stripe_pub_key"
    STRIPE_WEBHOOK_SECRET: str = ""
    CURRENCY: str = "usd"

    # Job lifecycle
    JOB_NUMBER_PREFIX: str = "JOB"
    QUOTE_VALIDITY_DAYS: int = 7
    QUOTE_SWEEP_MINUTES: int = 15
    TAX_RATE: float = 0.0
    ENFORCE_STAGE_ORDER: bool = True
    MESSAGE_PAGE_LIMIT: int = 50
    MESSAGE_MAX_LENGTH: int = 2000

    # App
    APP_ENV: str = "development"
    APP_URL: str = "http://localhost:8000"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
