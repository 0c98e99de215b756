from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    app_env: str
    db_path: str
    wikipedia_api_url: str
    wikipedia_user_agent: str
    units_per_topic: int
    request_delay: float
    web_host: str
    web_port: int
    log_level: str

    @staticmethod
    def from_env() -> "Settings":
        def _i(name: str, default: str) -> int:
            return int(os.getenv(name, default).strip())

        def _f(name: str, default: str) -> float:
            return float(os.getenv(name, default).strip())

        return Settings(
            app_env=os.getenv("APP_ENV", "dev").strip(),
            db_path=os.getenv("DB_PATH", "tellme_data/tellme.db").strip(),
            wikipedia_api_url=os.getenv(
                "WIKIPEDIA_API_URL", "https://en.wikipedia.org/w/api.php"
            ).strip(),
            wikipedia_user_agent=os.getenv(
                "WIKIPEDIA_USER_AGENT", "tellme/0.2.0 (https://github.com/xeij/tellme)"
            ).strip(),
            units_per_topic=_i("UNITS_PER_TOPIC", "150"),
            request_delay=_f("REQUEST_DELAY", "0.5"),
            web_host=os.getenv("WEB_HOST", "127.0.0.1").strip(),
            web_port=_i("WEB_PORT", "3000"),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )
