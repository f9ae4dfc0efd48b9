"""Environment-driven settings."""

from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from quote_relay.errors import ConfigError

# env var -> Settings field
_ENV_FIELDS: dict[str, str] = {
    "TL_SERVER": "tl_server",
    "TL_ENV": "tl_env",
    "TL_BRAND_KEY": "tl_brand_key",
    "TL_SIMULATOR": "tl_simulator",
    "HOST": "host",
    "PORT": "port",
    "HEARTBEAT_MS": "heartbeat_ms",
    "STALE_MS": "stale_ms",
    "WATCHDOG_INTERVAL_MS": "watchdog_interval_ms",
    "SUBSCRIBER_QUEUE_SIZE": "subscriber_queue_size",
    "READ_TOKEN": "read_token",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    tl_server: str = "wss://api.tradelocker.com"
    tl_env: str = "LIVE"
    tl_brand_key: str = ""
    tl_simulator: bool = False  # opt-in offline quotes when no brand key
    host: str = "0.0.0.0"
    port: int = 8080
    heartbeat_ms: int = Field(default=1000, gt=0)  # keepalive also surfaces dead clients
    stale_ms: int = 120000  # 0 disables the watchdog
    watchdog_interval_ms: int = 30000
    subscriber_queue_size: int = 1000
    read_token: str = ""  # empty disables read auth
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        raw: dict[str, str] = {}
        for env, field in _ENV_FIELDS.items():
            value = os.getenv(env, "").strip()
            if value:
                raw[field] = value
        try:
            settings = cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"invalid configuration: {exc}") from exc
        settings.require_upstream()
        return settings

    @property
    def use_simulator(self) -> bool:
        return not self.tl_brand_key.strip() and self.tl_simulator

    def require_upstream(self) -> None:
        """Fail unless a brand key is set or the simulator was asked for."""
        if not self.tl_brand_key.strip() and not self.tl_simulator:
            raise ConfigError("Missing TL_BRAND_KEY (set TL_SIMULATOR=1 for simulated quotes)")


@lru_cache
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()
