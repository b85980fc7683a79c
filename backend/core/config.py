# backend/core/config.py
import os
from typing import List, Literal
from dotenv import load_dotenv

class Settings:
    """
    Setup environment variables.
        - ROOM_STORE the shared room store to use: "memory" or "redis"
        - REDIS_* connection details when ROOM_STORE is "redis"
        - CARD_START / CARD_LIMIT bounds of the card deck
        - IDENTITY_SLOT the key-value slot holding a participant key
    """

    # Load environment variables from the .env file
    load_dotenv()

    ROOM_STORE: Literal["memory", "redis"] = os.getenv("ROOM_STORE", "memory")

    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_ACCESS_KEY: str = os.getenv("REDIS_ACCESS_KEY", "")
    REDIS_SSL: bool = os.getenv("REDIS_SSL", "false").lower() in ("1", "true", "yes")

    CARD_START: float = float(os.getenv("CARD_START", "0.5"))
    CARD_LIMIT: float = float(os.getenv("CARD_LIMIT", "26"))

    IDENTITY_SLOT: str = os.getenv("IDENTITY_SLOT", "user_id")

    ALLOWED_ORIGINS: List[str] = os.getenv("ALLOWED_ORIGINS", "*").split(",")

    @property
    def redis_url(self) -> str:
        scheme = "rediss" if self.REDIS_SSL else "redis"
        auth = f":{self.REDIS_ACCESS_KEY}@" if self.REDIS_ACCESS_KEY else ""
        return f"{scheme}://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}"

settings = Settings()
