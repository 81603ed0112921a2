"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. The API service and the view layer both read from
the same Settings object, so a single .env drives a whole local setup.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── MongoDB ───────────────────────────────────────────────────
    # Local dev default matches a plain `docker run mongo` container.
    mongo_uri: str = "mongodb://localhost:27017/zonemap"
    mongo_db_name: str = "zonemap"

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the map and admin pages.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Views ─────────────────────────────────────────────────────
    # Base URL the view layer uses to reach the API.
    api_base_url: str = "http://localhost:8000"

    # Client-side gate for the admin view. Plain string comparison only;
    # this is a game-master convenience, not an access control.
    admin_password: str = "MEOWL"

    @property
    def realtime_url(self) -> str:
        base = self.api_base_url.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/api/v1/realtime"

    # ─── Realtime feed ─────────────────────────────────────────────
    # Per-subscriber buffer. A subscriber that falls this far behind
    # starts losing notifications instead of blocking writers.
    realtime_queue_size: int = 256

    # ─── Rate limiting ─────────────────────────────────────────────
    # Applied to every write route. The reputation slider emits one
    # PATCH per tick while dragged, so keep this generous.
    write_rate_limit: str = "240/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton: import this everywhere instead of instantiating Settings()
settings = Settings()
