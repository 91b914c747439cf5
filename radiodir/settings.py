import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    # HTTP Configuration
    user_agent: str = Field(default="radiodir/1.0", alias="RADIO_USER_AGENT")
    request_timeout: float = Field(default=10.0, alias="RADIO_REQUEST_TIMEOUT")
    probe_timeout: float = Field(default=2.5, alias="RADIO_PROBE_TIMEOUT")

    # Cache Configuration
    cache_ttl_seconds: float = Field(default=300.0, alias="RADIO_CACHE_TTL_SECONDS")
    cache_max_size: int = Field(default=80, alias="RADIO_CACHE_MAX_SIZE")

    # Recommendation Configuration
    locale: str = Field(default="en", alias="RADIO_LOCALE")

    debug: bool = Field(default=False, alias="RADIO_DEBUG")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from process environment variables."""
        return cls.model_validate(dict(os.environ))


global_settings = Settings.from_env()
