from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(env.get(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 3000
    data_file: Path = Path("data.json")
    allowed_domains: Tuple[str, ...] = field(default_factory=tuple)
    default_page_size: int = 24
    relay_rate_limit: int = 100
    relay_rate_window: float = 15 * 60
    relay_connect_timeout: float = 10
    relay_read_timeout: float = 30
    relay_user_agent: str = "Mozilla/5.0"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        domains = env.get("ALLOWED_DOMAINS", "")
        return cls(
            host=env.get("HOST", "0.0.0.0"),
            port=_env_int(env, "PORT", 3000),
            data_file=Path(env.get("DATA_FILE") or "data.json"),
            allowed_domains=tuple(d.strip() for d in domains.split(",") if d.strip()),
            default_page_size=_env_int(env, "DEFAULT_PAGE_SIZE", 24),
            relay_rate_limit=_env_int(env, "RELAY_RATE_LIMIT", 100),
            relay_rate_window=_env_float(env, "RELAY_RATE_WINDOW", 15 * 60),
            relay_connect_timeout=_env_float(env, "RELAY_CONNECT_TIMEOUT", 10),
            relay_read_timeout=_env_float(env, "RELAY_READ_TIMEOUT", 30),
            relay_user_agent=env.get("RELAY_USER_AGENT", "Mozilla/5.0"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    def as_flask_config(self) -> dict:
        return {
            "DATA_FILE": str(self.data_file),
            "ALLOWED_DOMAINS": list(self.allowed_domains),
            "DEFAULT_PAGE_SIZE": self.default_page_size,
            "RELAY_RATE_LIMIT": self.relay_rate_limit,
            "RELAY_RATE_WINDOW": self.relay_rate_window,
        }
