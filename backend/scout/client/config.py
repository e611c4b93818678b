from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    """
    Client settings loaded from SCOUT_* environment variables.

    SCOUT_API_URL          Base URL every endpoint path is appended to
    SCOUT_TIMEOUT_SECONDS  Total per-request deadline; empty disables it
    """

    api_url: str = Field(default="http://localhost:5000/api")
    timeout_seconds: Optional[float] = Field(default=30.0, gt=0)

    model_config = {
        "env_prefix": "SCOUT_",
        "case_sensitive": False,
        "extra": "ignore",
    }
