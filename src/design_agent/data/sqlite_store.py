import aiosqlite

from ..records import Artifact, Message

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS messages (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    artifact_ref TEXT REFERENCES artifacts(id)
);

CREATE TABLE IF NOT EXISTS artifacts (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    title TEXT NOT NULL,
    description TEXT NOT NULL,
    image_ref TEXT NOT NULL,
    created_at TEXT NOT NULL
);
"""


class SQLiteStore:
    """Snapshots the message log and artifact collection between restarts.

    Records are stored field-for-field; ``seq`` preserves insertion order.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._db: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """Return the database connection, raising if not initialized."""
        if self._db is None:
            raise RuntimeError("SQLiteStore not initialized, call initialize() first")
        return self._db

    async def initialize(self) -> None:
        self._db = await aiosqlite.connect(self._path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA_SQL)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()

    # --- Messages ---

    async def save_message(self, message: Message) -> None:
        data = message.to_dict()
        await self.db.execute(
            "INSERT OR IGNORE INTO messages (id, role, content, timestamp, artifact_ref) VALUES (?, ?, ?, ?, ?)",
            (data["id"], data["role"], data["content"], data["timestamp"], data["artifact_ref"]),
        )
        await self.db.commit()

    async def list_messages(self) -> list[Message]:
        cursor = await self.db.execute(
            "SELECT id, role, content, timestamp, artifact_ref FROM messages ORDER BY seq"
        )
        rows = await cursor.fetchall()
        return [Message.from_dict(dict(r)) for r in rows]

    async def clear_messages(self) -> None:
        await self.db.execute("DELETE FROM messages")
        await self.db.commit()

    # --- Artifacts ---

    async def save_artifact(self, artifact: Artifact) -> None:
        data = artifact.to_dict()
        await self.db.execute(
            """INSERT OR IGNORE INTO artifacts
               (id, title, description, image_ref, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                data["id"],
                data["title"],
                data["description"],
                data["image_ref"],
                data["created_at"],
            ),
        )
        await self.db.commit()

    async def list_artifacts(self) -> list[Artifact]:
        cursor = await self.db.execute(
            "SELECT id, title, description, image_ref, created_at FROM artifacts ORDER BY seq"
        )
        rows = await cursor.fetchall()
        return [Artifact.from_dict(dict(r)) for r in rows]
