"""Client configuration via environment variables (``HRMS_`` prefix)."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for the API client."""

    model_config = SettingsConfigDict(
        env_prefix="HRMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    API_BASE_URL: str = "https://hrms-backend-omega.vercel.app/api/v1"
    TIMEOUT_SECONDS: float = 10.0
    STORE_PATH: str = "~/.hrms/client_store.json"


client_settings = ClientSettings()
