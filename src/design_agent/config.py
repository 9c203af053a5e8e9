import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_DIR = Path(__file__).resolve().parent.parent.parent
DATA_DIR = Path(os.environ.get("DATA_DIR", str(PROJECT_DIR / "data")))
SQLITE_PATH = DATA_DIR / "design_agent.db"

ROOT_PATH = os.environ.get("ROOT_PATH", "")
MODEL = os.environ.get("MODEL", "openai/gpt-4.1-mini")
CHAT_API_BASE = os.environ.get("CHAT_API_BASE", "https://openrouter.ai/api/v1")
IMAGE_MODEL = os.environ.get("IMAGE_MODEL", "dall-e-3")
IMAGE_API_BASE = os.environ.get("IMAGE_API_BASE", "https://api.openai.com/v1")
IMAGE_SIZE = os.environ.get("IMAGE_SIZE", "1024x1024")
REQUEST_TIMEOUT_SECS = float(os.environ.get("REQUEST_TIMEOUT_SECS", "60"))
TEMPERATURE = 0.7
MAX_TOKENS = 1000
APP_REFERER = os.environ.get("APP_REFERER", "http://localhost:5173")
APP_TITLE = "AI Design Agent"

DEFAULT_ITEM_HEIGHT = 320
DEFAULT_OVERSCAN = 3
RECENT_SEARCH_LIMIT = 5


@dataclass(frozen=True)
class Credentials:
    """API keys handed to the clients at construction time."""

    chat_api_key: str | None = None
    image_api_key: str | None = None

    def __repr__(self) -> str:
        return (
            f"Credentials(chat_api_key={'set' if self.chat_api_key else None}, "
            f"image_api_key={'set' if self.image_api_key else None})"
        )


def load_credentials() -> Credentials:
    return Credentials(
        chat_api_key=os.environ.get("OPENROUTER_API_KEY") or None,
        image_api_key=os.environ.get("IMAGE_API_KEY") or os.environ.get("OPENAI_API_KEY") or None,
    )
