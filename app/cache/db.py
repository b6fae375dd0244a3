import sqlite3
import os
from typing import Optional
from app.core.config import settings

DATABASE_PATH = settings.DATABASE_PATH

def init_db():
    """Initialize SQLite database with quote cache and session store tables"""
    os.makedirs(os.path.dirname(DATABASE_PATH) or ".", exist_ok=True)

    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS quote_cache (
                kind TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS session_store (
                session_id TEXT NOT NULL,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(session_id, key)
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_session_store_id ON session_store(session_id)")
        conn.commit()

def get_quote(kind: str, max_age_hours: int) -> Optional[str]:
    """Get cached quote payload if it is younger than max_age_hours"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        cursor = conn.execute(
            "SELECT payload FROM quote_cache WHERE kind = ? AND created_at > datetime('now', ?)",
            (kind, f"-{int(max_age_hours)} hours")
        )
        result = cursor.fetchone()
        return result[0] if result else None

def set_quote(kind: str, payload: str):
    """Cache quote payload, restarting its age"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO quote_cache (kind, payload) VALUES (?, ?)",
            (kind, payload)
        )
        conn.commit()

def purge_stale_quotes(max_age_hours: int):
    """Remove cached quotes older than max_age_hours"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute(
            "DELETE FROM quote_cache WHERE created_at <= datetime('now', ?)",
            (f"-{int(max_age_hours)} hours",)
        )
        conn.commit()

def purge_stale_sessions(max_age_hours: int):
    """Remove session records not written for max_age_hours"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute(
            "DELETE FROM session_store WHERE updated_at <= datetime('now', ?)",
            (f"-{int(max_age_hours)} hours",)
        )
        conn.commit()

def session_get(session_id: str, key: str) -> Optional[str]:
    """Get a session-scoped value"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        cursor = conn.execute(
            "SELECT value FROM session_store WHERE session_id = ? AND key = ?",
            (session_id, key)
        )
        result = cursor.fetchone()
        return result[0] if result else None

def session_set(session_id: str, key: str, value: str):
    """Store a session-scoped value"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO session_store (session_id, key, value) VALUES (?, ?, ?)",
            (session_id, key, value)
        )
        conn.commit()

def session_delete(session_id: str, key: str):
    """Remove a session-scoped value"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute(
            "DELETE FROM session_store WHERE session_id = ? AND key = ?",
            (session_id, key)
        )
        conn.commit()

def clear_quotes():
    """Clear cached quotes, leaving session records alone"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute("DELETE FROM quote_cache")
        conn.commit()

def clear_all():
    """Clear all cache and session entries (for testing)"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        conn.execute("DELETE FROM quote_cache")
        conn.execute("DELETE FROM session_store")
        conn.commit()

def get_stats() -> dict:
    """Get cache statistics"""
    with sqlite3.connect(DATABASE_PATH) as conn:
        cursor = conn.execute("SELECT COUNT(*) FROM quote_cache")
        cached_quotes = cursor.fetchone()[0]

        cursor = conn.execute("SELECT COUNT(DISTINCT session_id) FROM session_store")
        sessions = cursor.fetchone()[0]

        cursor = conn.execute(
            "SELECT created_at FROM quote_cache WHERE kind = ?", ("today",)
        )
        row = cursor.fetchone()

        return {
            "cached_quotes": cached_quotes,
            "daily_cached_at": row[0] if row else None,
            "sessions": sessions,
            "database_path": DATABASE_PATH
        }
