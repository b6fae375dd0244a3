import json
import sqlite3
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, patch
from bs4 import BeautifulSoup
from fastapi.testclient import TestClient
from app.main import app
from app.cache import db as cache_db
from app.core.config import settings
from app.core.timeutils import utcnow
from app.fetch.base import ParseError, UpstreamError
from app.schemas import Quote

# Test client
client = TestClient(app)

DAILY = Quote(text="Well begun is half done.", author="Aristotle")
FIRST = Quote(text="What we think, we become.", author="Buddha")
SECOND = Quote(text="Simplicity is the ultimate sophistication.", author="Leonardo da Vinci")

def page(response) -> BeautifulSoup:
    return BeautifulSoup(response.text, "html.parser")

class TestPages:
    """Integration tests for the daily and random views"""

    def setup_method(self):
        client.cookies.clear()

    @patch('app.fetch.quotes.fetch_daily', new_callable=AsyncMock)
    def test_daily_page(self, mock_daily):
        mock_daily.return_value = DAILY

        response = client.get("/")

        assert response.status_code == 200
        doc = page(response)
        assert doc.select_one(".quote-text").get_text() == DAILY.text
        assert doc.select_one(".quote-author").get_text() == DAILY.author
        assert doc.select_one(".today-date") is not None
        assert doc.select_one("button") is None
        assert doc.select_one("a.nav-button")["href"] == "/random"
        assert settings.SESSION_COOKIE_NAME in response.cookies

    @patch('app.fetch.quotes.fetch_daily', new_callable=AsyncMock)
    def test_daily_page_upstream_failure(self, mock_daily):
        """Initial fetch failure is fatal to the page and leaves the cooldown alone"""
        mock_daily.side_effect = UpstreamError("HTTP error 500", status_code=500)

        response = client.get("/")

        assert response.status_code == 502
        assert page(response).select_one("[role=alert]") is not None
        assert client.get("/api/cooldown").json() == {"locked": False, "remaining": 0}

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_random_page(self, mock_random):
        mock_random.return_value = FIRST

        response = client.get("/random")

        assert response.status_code == 200
        doc = page(response)
        assert doc.select_one(".quote-text").get_text() == FIRST.text
        button = doc.select_one("button#new-quote")
        assert button.get_text() == "Get new quote"
        assert not button.has_attr("disabled")
        assert doc.select_one("a.nav-button")["href"] == "/"

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_random_page_parse_failure(self, mock_random):
        mock_random.side_effect = ParseError("Expected a non-empty JSON list")
        assert client.get("/random").status_code == 502

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_form_refresh_then_locked(self, mock_random):
        """The no-JS form path goes through the same cooldown"""
        mock_random.side_effect = [FIRST, SECOND]
        client.get("/random")

        response = client.post("/random")
        assert response.status_code == 200
        doc = page(response)
        assert doc.select_one(".quote-text").get_text() == SECOND.text
        button = doc.select_one("button#new-quote")
        assert button.has_attr("disabled")
        assert button.get_text().startswith("Wait ")

        response = client.post("/random")
        assert response.status_code == 429
        assert "Retry-After" in response.headers
        assert page(response).select_one(".quote-text").get_text() == SECOND.text
        assert mock_random.await_count == 2

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_form_refresh_failure_shows_closable_alert(self, mock_random):
        mock_random.side_effect = [FIRST, UpstreamError("HTTP error 500", status_code=500)]
        client.get("/random")

        response = client.post("/random")

        assert response.status_code == 502
        doc = page(response)
        alert = doc.select_one("[role=alert]")
        assert alert.select_one(".alert-message").get_text() == "Failed to fetch a new quote."
        assert alert.select_one("button.alert-close")["aria-label"] == "Dismiss"
        assert ".alert-close" in doc.select_one("script").get_text()
        assert doc.select_one(".quote-text").get_text() == FIRST.text
        assert not doc.select_one("button#new-quote").has_attr("disabled")

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_cooldown_survives_navigation(self, mock_random):
        """Reloading the random view keeps the button locked"""
        mock_random.side_effect = [FIRST, SECOND, FIRST]
        client.get("/random")
        client.post("/api/quote/refresh")

        response = client.get("/random")
        button = page(response).select_one("button#new-quote")
        assert button.has_attr("disabled")
        assert button["data-state"] == "locked"

class TestRefreshApi:
    """Integration tests for POST /api/quote/refresh"""

    def setup_method(self):
        client.cookies.clear()

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_refresh_success(self, mock_random):
        mock_random.side_effect = [FIRST, SECOND]
        client.get("/random")

        response = client.post("/api/quote/refresh")

        assert response.status_code == 200
        data = response.json()
        assert data["quote"] == {"text": SECOND.text, "author": SECOND.author}
        assert data["state"] == "locked"
        assert data["remaining"] == 7
        assert data["button_label"] == "Wait 7s"
        assert data["error"] is None

        status = client.get("/api/cooldown").json()
        assert status["locked"] is True
        assert 6 <= status["remaining"] <= 7

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_refresh_while_locked_skips_upstream(self, mock_random):
        mock_random.side_effect = [FIRST, SECOND]
        client.get("/random")
        client.post("/api/quote/refresh")

        response = client.post("/api/quote/refresh")

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) > 0
        data = response.json()
        assert data["quote"]["text"] == SECOND.text
        assert data["state"] == "locked"
        assert mock_random.await_count == 2

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_refresh_failure_does_not_consume_cooldown(self, mock_random):
        mock_random.side_effect = [FIRST, UpstreamError("HTTP error 500", status_code=500), SECOND]
        client.get("/random")

        response = client.post("/api/quote/refresh")
        assert response.status_code == 502
        data = response.json()
        assert data["quote"]["text"] == FIRST.text
        assert data["state"] == "idle"
        assert data["error"] == "Failed to fetch a new quote."
        assert client.get("/api/cooldown").json() == {"locked": False, "remaining": 0}

        # Next attempt is allowed straight away
        response = client.post("/api/quote/refresh")
        assert response.status_code == 200
        assert response.json()["quote"]["text"] == SECOND.text

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_refresh_allowed_after_cooldown(self, mock_random):
        mock_random.side_effect = [FIRST, SECOND, FIRST]
        client.get("/random")
        client.post("/api/quote/refresh")

        later = utcnow() + timedelta(seconds=8)
        with patch('app.services.quote_views.utcnow', return_value=later):
            assert client.get("/api/cooldown").json() == {"locked": False, "remaining": 0}
            response = client.post("/api/quote/refresh")

        assert response.status_code == 200
        assert response.json()["quote"]["text"] == FIRST.text

    @patch('app.fetch.quotes.fetch_daily', new_callable=AsyncMock)
    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_refresh_without_random_view_starts_from_daily(self, mock_random, mock_daily):
        mock_daily.return_value = DAILY
        mock_random.return_value = FIRST

        response = client.post("/api/quote/refresh")

        assert response.status_code == 200
        assert response.json()["quote"]["text"] == FIRST.text
        mock_daily.assert_awaited_once()

    def test_sessions_are_isolated(self):
        with patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock) as mock_random:
            mock_random.side_effect = [FIRST, SECOND]
            client.get("/random")
            client.post("/api/quote/refresh")

        other = TestClient(app)
        assert other.get("/api/cooldown").json() == {"locked": False, "remaining": 0}

class TestCooldownStream:
    """Server-Sent Events countdown"""

    def setup_method(self):
        client.cookies.clear()

    def _events(self):
        with client.stream("GET", "/api/cooldown/stream") as response:
            assert response.status_code == 200
            assert response.headers["content-type"].startswith("text/event-stream")
            return [
                json.loads(line[len("data: "):])
                for line in response.iter_lines()
                if line.startswith("data: ")
            ]

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_stream_counts_down_to_idle(self, mock_random):
        mock_random.side_effect = [FIRST, SECOND]
        client.get("/random")
        client.post("/api/quote/refresh")

        events = self._events()

        assert events[0]["state"] == "locked"
        assert events[-1]["state"] == "idle"
        assert events[-1]["button_label"] == "Get new quote"
        remaining = [event["remaining"] for event in events]
        assert remaining == sorted(remaining, reverse=True)
        assert all(event["quote"]["text"] == SECOND.text for event in events)

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_stream_when_unlocked(self, mock_random):
        mock_random.return_value = FIRST
        client.get("/random")

        events = self._events()

        assert len(events) == 1
        assert events[0]["state"] == "idle"

class TestHealthEndpoints:
    """Test health and utility endpoints"""

    def test_health_endpoint(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_service_info(self):
        response = client.get("/api")
        assert response.status_code == 200
        data = response.json()
        assert "service" in data
        assert "endpoints" in data

    def test_cache_stats_endpoint(self):
        response = client.get("/cache/stats")
        assert response.status_code == 200
        data = response.json()
        assert "cached_quotes" in data
        assert data["daily_cache_ttl_hours"] == 24

    def test_cache_clear_endpoint(self):
        response = client.delete("/cache/clear")
        assert response.status_code == 200

    @patch('app.fetch.quotes.fetch_random', new_callable=AsyncMock)
    def test_cache_clear_keeps_session_cooldown(self, mock_random):
        client.cookies.clear()
        mock_random.side_effect = [FIRST, SECOND]
        client.get("/random")
        client.post("/api/quote/refresh")

        response = client.delete("/cache/clear")

        assert response.status_code == 200
        assert client.get("/cache/stats").json()["cached_quotes"] == 0
        assert client.get("/api/cooldown").json()["locked"] is True
        assert client.post("/api/quote/refresh").status_code == 429
        assert mock_random.await_count == 2

class TestStartup:
    def test_startup_purges_idle_sessions(self):
        cache_db.session_set("idle", "quoteCooldownUnlock", "1")
        cache_db.session_set("active", "quoteCooldownUnlock", "1")
        with sqlite3.connect(cache_db.DATABASE_PATH) as conn:
            conn.execute(
                "UPDATE session_store SET updated_at = datetime('now', ?) WHERE session_id = ?",
                (f"-{settings.SESSION_TTL_HOURS + 1} hours", "idle")
            )
            conn.commit()

        with TestClient(app) as started:
            assert started.get("/health").status_code == 200

        assert cache_db.session_get("idle", "quoteCooldownUnlock") is None
        assert cache_db.session_get("active", "quoteCooldownUnlock") == "1"
