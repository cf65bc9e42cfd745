"""
HTTP settings for the PharmaLedger API.

Uses pydantic-settings for environment variable loading.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """HTTP binding configuration loaded from environment."""

    host: str = Field(default="0.0.0.0", description="API bind host")
    port: int = Field(default=8080, description="API bind port")

    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    model_config = {"env_prefix": "PHARMALEDGER_HTTP_"}

    @property
    def bind_address(self) -> str:
        return f"{self.host}:{self.port}"
