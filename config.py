"""Configuration management with environment variable support."""

import os
from dataclasses import dataclass, field
from typing import Literal


def _parse_cors_origins() -> list[str]:
    """Parse CORS_ORIGINS environment variable."""
    origins = os.getenv("CORS_ORIGINS", "http://localhost:8000")
    return [o.strip() for o in origins.split(",") if o.strip()]


def _parse_session_ttl() -> int | None:
    """Parse SESSION_TTL; unset or 0 keeps games forever."""
    ttl = int(os.getenv("SESSION_TTL", "0"))
    return ttl or None


@dataclass(frozen=True)
class CORSConfig:
    """CORS configuration."""

    allowed_origins: list[str] = field(default_factory=_parse_cors_origins)
    allow_credentials: bool = True
    allow_methods: list[str] = field(default_factory=lambda: ["*"])
    allow_headers: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class RateLimitConfig:
    """Rate limiting configuration."""

    enabled: bool = field(
        default_factory=lambda: os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    )
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_RPM", "60"))
    )


@dataclass(frozen=True)
class RedisConfig:
    """Redis connection configuration."""

    host: str = field(default_factory=lambda: os.getenv("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: int(os.getenv("REDIS_PORT", "6379")))
    db: int = field(default_factory=lambda: int(os.getenv("REDIS_DB", "0")))
    password: str | None = field(default_factory=lambda: os.getenv("REDIS_PASSWORD"))

    @property
    def url(self) -> str:
        """Build Redis connection URL."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


@dataclass(frozen=True)
class StoreConfig:
    """Game store selection."""

    backend: Literal["auto", "redis", "memory"] = field(
        default_factory=lambda: os.getenv("SESSION_STORE", "auto").lower()  # type: ignore[return-value]
    )
    key_prefix: str = "blackjack:"


@dataclass(frozen=True)
class LockConfig:
    """Per-game mutation lock configuration."""

    # Seconds before a held Redis lock expires on its own; keep above DECK_API_TIMEOUT
    timeout: float = field(default_factory=lambda: float(os.getenv("LOCK_TIMEOUT", "30")))
    # Seconds to wait for a busy game before giving up
    blocking_timeout: float = field(
        default_factory=lambda: float(os.getenv("LOCK_BLOCKING_TIMEOUT", "5"))
    )


@dataclass(frozen=True)
class CardSourceConfig:
    """Card shoe provider configuration."""

    source: Literal["remote", "local"] = field(
        default_factory=lambda: os.getenv("CARD_SOURCE", "remote").lower()  # type: ignore[return-value]
    )
    base_url: str = field(
        default_factory=lambda: os.getenv("DECK_API_URL", "https://www.deckofcardsapi.com/api")
    )
    timeout: float = field(default_factory=lambda: float(os.getenv("DECK_API_TIMEOUT", "10")))


@dataclass(frozen=True)
class GameConfig:
    """Default table configuration."""

    num_decks: int = 6
    dealer_name: str = "Dealer"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration."""

    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    session_ttl: int | None = field(default_factory=_parse_session_ttl)

    redis: RedisConfig = field(default_factory=RedisConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    lock: LockConfig = field(default_factory=LockConfig)
    cards: CardSourceConfig = field(default_factory=CardSourceConfig)
    game: GameConfig = field(default_factory=GameConfig)
    cors: CORSConfig = field(default_factory=CORSConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)


# Global configuration instance
config = AppConfig()
