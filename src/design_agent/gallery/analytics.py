from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..records import Artifact

TIME_RANGES = {"week": timedelta(days=7), "month": timedelta(days=30), "all": None}
POPULAR_TAG_LIMIT = 8
ACTIVITY_DAYS = 7


@dataclass
class GallerySummary:
    total_designs: int = 0
    today_designs: int = 0
    weekly_growth: float = 0.0
    popular_tags: list[dict] = field(default_factory=list)
    daily_activity: list[dict] = field(default_factory=list)


def _words(artifact: Artifact) -> list[str]:
    text = f"{artifact.title} {artifact.description}".lower()
    return [w for w in text.split() if len(w) > 2]


def summarize(artifacts: Iterable[Artifact], now: datetime, time_range: str = "week") -> GallerySummary:
    """Usage figures for the gallery dashboard, relative to ``now``."""
    if time_range not in TIME_RANGES:
        raise ValueError(f"Unknown time range: {time_range}. Available: {', '.join(TIME_RANGES)}")

    artifacts = list(artifacts)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = today - timedelta(days=7)
    two_weeks_ago = week_ago - timedelta(days=7)

    span = TIME_RANGES[time_range]
    in_range = artifacts if span is None else [a for a in artifacts if a.created_at >= today - span]

    this_week = sum(1 for a in artifacts if a.created_at >= week_ago)
    last_week = sum(1 for a in artifacts if two_weeks_ago <= a.created_at < week_ago)
    growth = (this_week - last_week) / last_week * 100 if last_week else 0.0

    word_counts: Counter[str] = Counter()
    for artifact in in_range:
        word_counts.update(_words(artifact))
    popular = [
        {"tag": tag, "count": count}
        for tag, count in sorted(word_counts.items(), key=lambda kv: (-kv[1], kv[0]))[
            :POPULAR_TAG_LIMIT
        ]
    ]

    activity = []
    for offset in range(ACTIVITY_DAYS - 1, -1, -1):
        day = today - timedelta(days=offset)
        next_day = day + timedelta(days=1)
        activity.append(
            {
                "date": day.date().isoformat(),
                "count": sum(1 for a in artifacts if day <= a.created_at < next_day),
            }
        )

    return GallerySummary(
        total_designs=len(in_range),
        today_designs=sum(1 for a in artifacts if a.created_at >= today),
        weekly_growth=round(growth, 1),
        popular_tags=popular,
        daily_activity=activity,
    )
