from typing import Dict, Optional
from app.cache import db as cache_db

class SessionStore:
    """Key-value store scoped to one browsing session"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

class SqliteSessionStore(SessionStore):
    """Session records kept in the shared SQLite database, keyed by session id"""

    def __init__(self, session_id: str):
        self.session_id = session_id

    def get(self, key: str) -> Optional[str]:
        return cache_db.session_get(self.session_id, key)

    def set(self, key: str, value: str) -> None:
        cache_db.session_set(self.session_id, key, value)

    def delete(self, key: str) -> None:
        cache_db.session_delete(self.session_id, key)

class MemorySessionStore(SessionStore):
    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
