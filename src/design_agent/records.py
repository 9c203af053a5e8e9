import itertools
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

ROLES = ("user", "assistant")


def now_utc() -> datetime:
    return datetime.now(UTC)


class MessageIdFactory:
    """Produces ``<epoch-ms>-<seq>`` ids that sort in creation order."""

    def __init__(self) -> None:
        self._seq = itertools.count(1)

    def __call__(self) -> str:
        return f"{int(time.time() * 1000)}-{next(self._seq):06d}"


@dataclass(frozen=True)
class Artifact:
    id: str
    title: str
    description: str
    image_ref: str
    created_at: datetime

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Artifact":
        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            image_ref=data["image_ref"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass(frozen=True)
class Message:
    id: str
    role: str
    content: str
    timestamp: datetime
    artifact_ref: str | None = None

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid role: {self.role}")

    def to_dict(self) -> dict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Message":
        return cls(
            id=data["id"],
            role=data["role"],
            content=data["content"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            artifact_ref=data.get("artifact_ref"),
        )
