from __future__ import annotations

from functools import lru_cache
from typing import Literal

from fastmcp.server.server import Transport
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # MCP Server
    mcp_transport_mode: Transport = "stdio"

    # Whalebone
    whalebone_base_url: str = "https://api.whalebone.io/whalebone/2"
    whalebone_access_key: str = ""
    whalebone_secret_key: str = ""
    whalebone_timeout: float = 30.0

    # Response shaping
    whalebone_max_results: int = 50
    whalebone_max_response_size: int = 50000
    whalebone_enable_truncation: bool = True

    # Privacy-sensitive tools are opt-in
    whalebone_enable_audit_logs: bool = False
    whalebone_enable_idp_incidents: bool = False

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"


@lru_cache
def get_settings() -> Settings:
    return Settings()
