import json
import sqlite3
from pathlib import Path
from typing import List, Optional, Union

from fintrack import config
from fintrack.domain.models import DEFAULT_BANKS, DEFAULT_TAGS, Transaction
from fintrack.logging_setup import get_logger

logger = get_logger(__name__)

DB_PATH = Path(config.DB_PATH)

HISTORY_KEY = "fintrack_history"
TAGS_KEY = "fintrack_tags"
BANKS_KEY = "fintrack_banks"
SCRIPT_URL_KEY = "fintrack_script_url"


class LocalStore:
    """Durable key-value storage for history, tags, banks and the endpoint URL.

    Every value is a string; lists are stored as JSON.
    """

    def __init__(self, db_path: Union[str, Path] = DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._create_tables()

    def _create_tables(self):
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
        """
        )
        self.conn.commit()

    def close(self):
        self.conn.close()

    # --- Raw access -----------------------------------------------------------
    def get(self, key: str) -> Optional[str]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM kv WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str):
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO kv(key, value) VALUES(?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (key, value),
        )
        self.conn.commit()

    def _load_json(self, key: str, default):
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored value for %s is not valid JSON; using default", key)
            return default

    # --- History ----------------------------------------------------------------
    def load_history(self) -> List[Transaction]:
        data = self._load_json(HISTORY_KEY, [])
        if not isinstance(data, list):
            return []
        out: List[Transaction] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            try:
                out.append(Transaction.from_dict(item))
            except (TypeError, ValueError):
                logger.warning("Skipping unreadable history record: %r", item)
        return out

    def save_history(self, records: List[Transaction]):
        self.set(HISTORY_KEY, json.dumps([t.to_dict() for t in records]))

    # --- Tags / banks -----------------------------------------------------------
    def _load_names(self, key: str, default: List[str]) -> List[str]:
        data = self._load_json(key, None)
        if not isinstance(data, list):
            return list(default)
        return [str(x) for x in data]

    def load_tags(self) -> List[str]:
        return self._load_names(TAGS_KEY, DEFAULT_TAGS)

    def save_tags(self, tags: List[str]):
        self.set(TAGS_KEY, json.dumps(list(tags)))

    def load_banks(self) -> List[str]:
        return self._load_names(BANKS_KEY, DEFAULT_BANKS)

    def save_banks(self, banks: List[str]):
        self.set(BANKS_KEY, json.dumps(list(banks)))

    # --- Endpoint ---------------------------------------------------------------
    def load_script_url(self) -> str:
        return self.get(SCRIPT_URL_KEY) or config.DEFAULT_SCRIPT_URL

    def save_script_url(self, url: str):
        self.set(SCRIPT_URL_KEY, url)
