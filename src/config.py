import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass
class Settings:
    discord_token: str | None
    test_guild_id: int | None
    storefront: str = "us"
    request_timeout: float = 15.0
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file, if present)."""
    load_dotenv()

    test_guild_id = os.getenv("TEST_GUILD_ID")
    return Settings(
        discord_token=os.getenv("DISCORD_TOKEN"),
        test_guild_id=int(test_guild_id) if test_guild_id else None,
        storefront=os.getenv("APPLE_MUSIC_STOREFRONT", "us"),
        request_timeout=float(os.getenv("APPLE_MUSIC_TIMEOUT", "15")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
