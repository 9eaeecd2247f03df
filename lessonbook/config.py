from decimal import Decimal
from functools import lru_cache
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="Europe/Berlin", alias="TIMEZONE")

    database_url: str = Field(default="sqlite+pysqlite:///./lessonbook.db", alias="DATABASE_URL")
    local_cache_path: str = Field(default="./lessonbook-cache.json", alias="LOCAL_CACHE_PATH")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")

    payment_provider: str = Field(default="stub", alias="PAYMENT_PROVIDER")
    payment_currency: str = Field(default="EUR", alias="PAYMENT_CURRENCY")
    payment_return_url: str = Field(
        default="lessonbook://payment/success", alias="PAYMENT_RETURN_URL"
    )
    payment_cancel_url: str = Field(
        default="lessonbook://payment/cancel", alias="PAYMENT_CANCEL_URL"
    )
    payment_timeout_seconds: float = Field(default=10.0, alias="PAYMENT_TIMEOUT_SECONDS")
    payment_brand_name: str = Field(default="LessonBook", alias="PAYMENT_BRAND_NAME")

    paypal_client_id: str = Field(default="", alias="PAYPAL_CLIENT_ID")
    paypal_secret: str = Field(default="", alias="PAYPAL_SECRET")
    paypal_sandbox: bool = Field(default=True, alias="PAYPAL_SANDBOX")
    paypal_me_username: str = Field(default="", alias="PAYPAL_ME_USERNAME")

    push_endpoint: str = Field(default="", alias="PUSH_ENDPOINT")
    push_api_key: str = Field(default="", alias="PUSH_API_KEY")

    default_hourly_rate: Decimal = Field(default=Decimal("50"), alias="DEFAULT_HOURLY_RATE")
    sweep_interval_seconds: int = Field(default=60, alias="SWEEP_INTERVAL_SECONDS")
    sync_interval_seconds: int = Field(default=30, alias="SYNC_INTERVAL_SECONDS")

    model_config = ConfigDict(populate_by_name=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    load_dotenv(override=False)
    return Settings(**os.environ)
