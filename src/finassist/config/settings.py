import os
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo
from dotenv import load_dotenv

from pydantic_settings import BaseSettings, SettingsConfigDict
load_dotenv()


class Settings(BaseSettings):
    # Supabase (PostgREST)
    supabase_url: Optional[str] = os.getenv("SUPABASE_URL")
    supabase_service_role_key: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

    # LLM
    openai_api_key: Optional[str] = os.getenv("OPENAI_API_KEY")

    # Service
    timezone: str = os.getenv("TIMEZONE", default="Asia/Jakarta")
    default_currency: str = os.getenv("DEFAULT_CURRENCY", default="IDR")
    data_dir: str = os.getenv("DATA_DIR", default="data")
    logs_dir: str = os.getenv("LOGS_DIR", default="logs")
    api_port: int = int(os.getenv("API_PORT", default="8000"))

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()


def local_now(tz: Optional[str] = None) -> datetime:
    """Current time in the service timezone (``TIMEZONE``, default Asia/Jakarta)."""
    return datetime.now(ZoneInfo(tz or settings.timezone))
