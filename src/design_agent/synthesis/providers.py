import logging
import zlib
from urllib.parse import quote

import httpx

from ..config import IMAGE_API_BASE, IMAGE_MODEL, IMAGE_SIZE, REQUEST_TIMEOUT_SECS

logger = logging.getLogger(__name__)

PLACEHOLDER_BASE_URL = "https://via.placeholder.com/400x300/4F46E5/FFFFFF"
PLACEHOLDER_PROMPT_CHARS = 100

MOCK_IMAGE_POOL = [
    "https://images.unsplash.com/photo-1561070791-2526d30994b5?w=400&h=300&fit=crop",
    "https://images.unsplash.com/photo-1558655146-9f40138edfeb?w=400&h=300&fit=crop",
    "https://images.unsplash.com/photo-1586717791821-3f44a563fa4c?w=400&h=300&fit=crop",
    "https://images.unsplash.com/photo-1561070791-36e60a6b6d1a?w=400&h=300&fit=crop",
]


class ImageProviderError(Exception):
    pass


class HostedImageProvider:
    """Primary provider: an OpenAI-compatible ``/images/generations`` endpoint."""

    def __init__(
        self,
        api_key: str,
        http_client: httpx.AsyncClient | None = None,
        api_base: str = IMAGE_API_BASE,
        model: str = IMAGE_MODEL,
        size: str = IMAGE_SIZE,
    ) -> None:
        self._api_key = api_key
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECS)
        self._url = f"{api_base.rstrip('/')}/images/generations"
        self._model = model
        self._size = size

    async def generate(self, prompt: str) -> str:
        logger.info("Requesting image (model=%s, size=%s)", self._model, self._size)
        try:
            response = await self._http.post(
                self._url,
                json={"model": self._model, "prompt": prompt, "n": 1, "size": self._size},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as e:
            raise ImageProviderError(f"Image request failed: {e}") from e

        if not response.is_success:
            raise ImageProviderError(
                f"Image service returned {response.status_code}: {response.text[:200]}"
            )

        try:
            item = response.json()["data"][0]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ImageProviderError("Malformed image response") from e

        if item.get("url"):
            return item["url"]
        if item.get("b64_json"):
            return f"data:image/png;base64,{item['b64_json']}"
        raise ImageProviderError("Image response carried neither url nor b64_json")

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()


class PlaceholderImageProvider:
    """Builds a placeholder image URL from the prompt text. Never fails."""

    def generate(self, prompt: str) -> str:
        text = quote(prompt[:PLACEHOLDER_PROMPT_CHARS], safe="")
        return f"{PLACEHOLDER_BASE_URL}?text={text}"


class MockImageProvider:
    """Picks an image from a fixed rotation pool, keyed by the text."""

    def __init__(self, pool: list[str] | None = None) -> None:
        self._pool = list(pool or MOCK_IMAGE_POOL)

    def generate(self, text: str) -> str:
        index = zlib.crc32(text.encode("utf-8")) % len(self._pool)
        return self._pool[index]
