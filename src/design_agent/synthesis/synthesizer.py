import logging
import re
import uuid
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime

import httpx

from ..agent.tools import GenerateDesignImage, ToolCallDirective, find_directive
from ..config import Credentials
from ..records import Artifact, now_utc
from .providers import HostedImageProvider, MockImageProvider, PlaceholderImageProvider

logger = logging.getLogger(__name__)

# Single-term match triggers synthesis. Treated as policy, not a contract.
DEFAULT_DESIGN_KEYWORDS = (
    "design",
    "interface",
    "page",
    "layout",
    "component",
    "ui",
    "ux",
    "prototype",
    "mockup",
    "wireframe",
    "create",
    "generate",
    "设计",
    "界面",
    "页面",
    "布局",
    "组件",
    "原型",
    "设计稿",
    "生成",
    "创建",
)

DEFAULT_TITLE = "Generated design"
DEFAULT_DESCRIPTION = "Design generated from your request"
MOCK_DESCRIPTION = "Design draft generated automatically from your request"
TITLE_EXCERPT_CHARS = 20


def _compile_keywords(keywords: Iterable[str]) -> list[re.Pattern]:
    patterns = []
    for term in keywords:
        term = term.strip().lower()
        if not term:
            continue
        # ASCII terms must start at a word boundary ("ui" must not hit "build").
        prefix = r"\b" if term.isascii() else ""
        patterns.append(re.compile(prefix + re.escape(term)))
    return patterns


def _excerpt(text: str, limit: int = TITLE_EXCERPT_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class ArtifactSynthesizer:
    """Decides whether a completed turn yields a design card and builds it.

    A ``generate_design_image`` directive goes through the hosted image
    provider (when an image credential exists) and falls back to a
    placeholder image. Without a directive, a keyword heuristic over the
    turn's text may produce a mock card. This stage never raises.
    """

    def __init__(
        self,
        credentials: Credentials,
        http_client: httpx.AsyncClient | None = None,
        keywords: Iterable[str] = DEFAULT_DESIGN_KEYWORDS,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._http_client = http_client
        self._primary = self._build_primary(credentials)
        self._placeholder = PlaceholderImageProvider()
        self._mock = MockImageProvider()
        self._keywords = _compile_keywords(keywords)
        self._clock = clock

    def _build_primary(self, credentials: Credentials) -> HostedImageProvider | None:
        if not credentials.image_api_key:
            return None
        return HostedImageProvider(credentials.image_api_key, http_client=self._http_client)

    async def set_credentials(self, credentials: Credentials) -> None:
        """Rebuild the primary provider for a new image credential."""
        previous, self._primary = self._primary, self._build_primary(credentials)
        if previous is not None:
            await previous.close()

    @property
    def has_primary_provider(self) -> bool:
        return self._primary is not None

    def wants_design(self, user_text: str, assistant_text: str) -> bool:
        haystack = f"{user_text} {assistant_text}".lower()
        return any(p.search(haystack) for p in self._keywords)

    async def synthesize(
        self,
        user_text: str,
        assistant_text: str,
        tool_calls: Sequence[ToolCallDirective],
        artifact_id: str | None = None,
    ) -> Artifact | None:
        artifact_id = artifact_id or str(uuid.uuid4())

        directive = find_directive(tool_calls, GenerateDesignImage)
        if directive is not None:
            return await self._from_directive(directive, user_text, artifact_id)

        if self.wants_design(user_text, assistant_text):
            return self._from_heuristic(user_text, artifact_id)

        return None

    async def _render(self, prompt: str) -> str:
        if self._primary is not None:
            try:
                return await self._primary.generate(prompt)
            except Exception as e:
                logger.warning("Primary image provider failed, using placeholder: %s", e)
        return self._placeholder.generate(prompt)

    async def _from_directive(
        self, directive: GenerateDesignImage, user_text: str, artifact_id: str
    ) -> Artifact:
        prompt = directive.prompt or user_text.strip() or DEFAULT_TITLE
        logger.info("Synthesizing design image for prompt: %s", prompt[:200])
        image_ref = await self._render(prompt)
        return Artifact(
            id=artifact_id,
            title=directive.title or DEFAULT_TITLE,
            description=directive.description or DEFAULT_DESCRIPTION,
            image_ref=image_ref,
            created_at=self._clock(),
        )

    def _from_heuristic(self, user_text: str, artifact_id: str) -> Artifact:
        excerpt = _excerpt(user_text)
        title = f'Design based on "{excerpt}"' if excerpt else DEFAULT_TITLE
        return Artifact(
            id=artifact_id,
            title=title,
            description=MOCK_DESCRIPTION,
            image_ref=self._mock.generate(user_text),
            created_at=self._clock(),
        )

    async def close(self) -> None:
        if self._primary is not None:
            await self._primary.close()
