# boutique/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - WORDPRESS_URL / WOOCOMMERCE_CONSUMER_KEY / WOOCOMMERCE_CONSUMER_SECRET
      - STRIPE_SECRET_KEY (only used to cancel payment intents on rollback)
      - SMTP_* (order confirmation mail)
    """

    PROJECT_NAME: str = "Boutique Checkout API"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # WooCommerce REST API (catalog + orders)
    WORDPRESS_URL: str | None = None
    WOOCOMMERCE_CONSUMER_KEY: str | None = None
    WOOCOMMERCE_CONSUMER_SECRET: str | None = None

    # Stripe (payment intents are created by an edge function)
    STRIPE_SECRET_KEY: str | None = None
    PAYMENT_INTENT_FUNCTION: str = "create-payment-intent"
    MONDIAL_RELAY_FUNCTION: str = "mondial-relay-api"

    # Checkout rules
    CURRENCY: str = "eur"
    MINIMUM_ORDER_AMOUNT: float = 10.0
    VAT_RATE: float = 20.0
    DELIVERY_BATCH_DAYS: int = 5
    CHECKOUT_OPTIONS_TTL_SECONDS: int = 3600
    RELAY_FALLBACK_COST: str = "3.80"

    HTTP_TIMEOUT_SECONDS: float = 30.0

    # SMTP (order confirmation mail; skipped when unset)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "La Boutique"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def woocommerce_configured(self) -> bool:
        return bool(
            self.WORDPRESS_URL
            and self.WOOCOMMERCE_CONSUMER_KEY
            and self.WOOCOMMERCE_CONSUMER_SECRET
        )

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USERNAME and self.SMTP_PASSWORD)


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
