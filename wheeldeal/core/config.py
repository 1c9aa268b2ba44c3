from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Wheel Deal API"
    # Comma-separated origins for CORS (e.g. https://wheeldeal.example,https://admin.wheeldeal.example). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # console|json

    # Stripe (PaymentIntents REST API + signed webhooks)
    STRIPE_API_BASE: str = "https://api.stripe.com"
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""  # If empty, webhook events are accepted unverified (dev only)
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    STRIPE_TIMEOUT_SECONDS: float = 10.0
    STRIPE_SANDBOX: bool = False  # If True, skip real Stripe calls and return synthetic intents (for dev when no keys)

    PAYMENT_CURRENCY: str = "inr"
    PAYMENT_CAPTURE_METHOD: str = "automatic"  # automatic|manual

    @property
    def is_production(self) -> bool:
        return self.ENV.strip().lower() in ("prod", "production")


settings = Settings()
