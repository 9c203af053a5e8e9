import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import NamedTuple

from ..config import RECENT_SEARCH_LIMIT
from ..records import Artifact
from .vocabulary import TAG_KEYWORDS, expand_query, term_pattern

logger = logging.getLogger(__name__)

SORT_KEYS = ("newest", "oldest", "title")
TITLE_WEIGHT = 2
DESCRIPTION_WEIGHT = 1

SUGGESTION_LIMIT = 8
MATCHING_TAG_LIMIT = 3
SMART_SUGGESTION_LIMIT = 2
SMART_TEMPLATES = ("Design a {}", "{} best practices", "Modern {}", "Mobile {}")


class Window(NamedTuple):
    """Inclusive index range ``[start, end]``; empty when ``end < start``."""

    start: int
    end: int

    @property
    def empty(self) -> bool:
        return self.end < self.start

    def as_slice(self) -> slice:
        return slice(self.start, self.end + 1)


EMPTY_WINDOW = Window(0, -1)


@dataclass(frozen=True)
class Suggestion:
    kind: str  # "recent", "tag", "smart", "trending"
    text: str
    count: int | None = None


@dataclass
class GalleryPage:
    """The slice of a gallery view the presentation layer must materialize."""

    artifacts: list[Artifact] = field(default_factory=list)
    start: int = 0
    total_count: int = 0


def extract_tags(artifact: Artifact) -> set[str]:
    text = f"{artifact.title} {artifact.description}".lower()
    return {tag for keyword, tag in TAG_KEYWORDS.items() if keyword in text}


def visible_window(
    count: int,
    scroll_offset: float,
    viewport_height: float,
    item_height: float,
    overscan: int = 0,
) -> Window:
    """Index range to render for a list of ``count`` fixed-height rows.

    The range covers every row intersecting the viewport plus ``overscan``
    rows on each side, clamped to ``[0, count - 1]``.
    """
    if not all(math.isfinite(v) for v in (scroll_offset, viewport_height, item_height)):
        raise ValueError("scroll_offset, viewport_height and item_height must be finite")
    if count <= 0:
        return EMPTY_WINDOW
    if item_height <= 0:
        raise ValueError("item_height must be positive")

    scroll_offset = max(0.0, scroll_offset)
    viewport_height = max(0.0, viewport_height)
    overscan = max(0, int(overscan))

    last = count - 1
    start = max(0, math.floor(scroll_offset / item_height) - overscan)
    end = min(last, math.ceil((scroll_offset + viewport_height) / item_height) + overscan)
    return Window(min(start, end), end)


class ArtifactIndex:
    """Owns the artifact collection and its derived views.

    The collection keeps insertion order; every view (sorted, searched,
    windowed) is computed into a new list, so callers never observe the
    underlying list changing under them.
    """

    def __init__(self, sort_key: str = "newest") -> None:
        self._items: list[Artifact] = []
        self._by_id: dict[str, Artifact] = {}
        self._sort_key = self._check_sort_key(sort_key)
        self._recent_searches: list[str] = []

    @staticmethod
    def _check_sort_key(key: str) -> str:
        if key not in SORT_KEYS:
            raise ValueError(f"Unknown sort key: {key}. Available: {', '.join(SORT_KEYS)}")
        return key

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, artifact_id: object) -> bool:
        return artifact_id in self._by_id

    def get(self, artifact_id: str) -> Artifact | None:
        return self._by_id.get(artifact_id)

    def add(self, artifact: Artifact) -> bool:
        """Insert ``artifact``; returns False (and changes nothing) for a known id."""
        if artifact.id in self._by_id:
            logger.info("Artifact %s already indexed, skipping", artifact.id)
            return False
        self._items.append(artifact)
        self._by_id[artifact.id] = artifact
        return True

    # --- Sorting ---

    @property
    def sort_key(self) -> str:
        return self._sort_key

    @sort_key.setter
    def sort_key(self, key: str) -> None:
        self._sort_key = self._check_sort_key(key)

    def _ordered(self, items: list[Artifact], key: str) -> list[Artifact]:
        # sorted() is stable, including with reverse=True.
        if key == "newest":
            return sorted(items, key=lambda a: a.created_at, reverse=True)
        if key == "oldest":
            return sorted(items, key=lambda a: a.created_at)
        return sorted(items, key=lambda a: a.title.casefold())

    def sorted_by(self, key: str) -> list[Artifact]:
        """Make ``key`` the active order and return the collection in it."""
        self.sort_key = key
        return self.view()

    def view(self) -> list[Artifact]:
        return self._ordered(self._items, self._sort_key)

    # --- Search ---

    @property
    def recent_searches(self) -> list[str]:
        return list(self._recent_searches)

    def clear_recent_searches(self) -> None:
        self._recent_searches.clear()

    def _remember(self, query: str) -> None:
        self._recent_searches = [query] + [q for q in self._recent_searches if q != query]
        del self._recent_searches[RECENT_SEARCH_LIMIT:]

    def _score(self, artifact: Artifact, patterns: list[re.Pattern]) -> int:
        title = artifact.title.lower()
        description = artifact.description.lower()
        score = 0
        if any(p.search(title) for p in patterns):
            score += TITLE_WEIGHT
        if any(p.search(description) for p in patterns):
            score += DESCRIPTION_WEIGHT
        return score

    def search(self, query: str) -> list[Artifact]:
        if not query or not query.strip():
            return self.view()

        query = query.strip()
        self._remember(query)
        # The query itself matches anywhere; synonyms it activates match at word starts.
        needle = query.lower()
        patterns = [re.compile(re.escape(needle))]
        patterns.extend(term_pattern(t) for t in expand_query(query) if t != needle)

        scored = [(self._score(a, patterns), a) for a in self.view()]
        matches = [(s, a) for s, a in scored if s > 0]
        # Stable sort keeps the active order among equal scores.
        matches.sort(key=lambda pair: pair[0], reverse=True)
        return [a for _, a in matches]

    def suggestions(self, query: str = "") -> list[Suggestion]:
        """Search-box suggestions for a partially typed ``query``.

        An empty query offers recent searches, the top tags and trending
        tags. Otherwise tags containing the query come first, followed by
        phrase templates once the query is longer than one character.
        Does not record the query as a recent search.
        """
        query = query.strip()
        needle = query.lower()
        counts = self.tag_counts()
        results: list[Suggestion] = []

        if not query:
            results.extend(Suggestion("recent", q) for q in self._recent_searches)

        matching = [(tag, n) for tag, n in counts if needle in tag]
        results.extend(Suggestion("tag", tag, n) for tag, n in matching[:MATCHING_TAG_LIMIT])

        if len(query) > 1:
            phrases = [t.format(query) for t in SMART_TEMPLATES]
            phrases = [p for p in phrases if not any(p in r.text for r in results)]
            results.extend(Suggestion("smart", p) for p in phrases[:SMART_SUGGESTION_LIMIT])

        if not query:
            results.extend(Suggestion("trending", tag, n) for tag, n in counts[:SUGGESTION_LIMIT])

        return results[:SUGGESTION_LIMIT]

    # --- Tags ---

    def extract_tags(self, artifact: Artifact) -> set[str]:
        return extract_tags(artifact)

    def tag_counts(self) -> list[tuple[str, int]]:
        counts: Counter[str] = Counter()
        for artifact in self._items:
            counts.update(extract_tags(artifact))
        return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))

    def filter_by_tag(self, tag: str) -> list[Artifact]:
        return [a for a in self.view() if tag in extract_tags(a)]

    # --- Virtualization ---

    def visible_window(
        self,
        scroll_offset: float,
        viewport_height: float,
        item_height: float,
        overscan: int = 0,
    ) -> Window:
        return visible_window(len(self._items), scroll_offset, viewport_height, item_height, overscan)

    def page(
        self,
        query: str,
        scroll_offset: float,
        viewport_height: float,
        item_height: float,
        overscan: int = 0,
    ) -> GalleryPage:
        results = self.search(query)
        window = visible_window(len(results), scroll_offset, viewport_height, item_height, overscan)
        if window.empty:
            return GalleryPage(total_count=len(results))
        return GalleryPage(
            artifacts=results[window.as_slice()],
            start=window.start,
            total_count=len(results),
        )
