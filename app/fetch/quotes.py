import datetime as dt
import json
import random
from typing import Optional

import httpx
from pydantic import ValidationError

from app.cache import db as cache_db
from app.core.config import settings
from app.fetch.base import FetchResult, ParseError, UpstreamError
from app.schemas import Quote, UpstreamQuote

TODAY_PATH = "/today"
RANDOM_PATH = "/random"
DAILY_CACHE_KIND = "today"

async def fetch_raw(path: str, no_cache: bool = False, client: Optional[httpx.AsyncClient] = None) -> FetchResult:
    """GET an upstream endpoint, raising UpstreamError on anything but a 2xx response."""
    url = f"{settings.ZENQUOTES_BASE_URL}{path}"
    headers = {
        "User-Agent": settings.USER_AGENT,
        "Accept": "application/json",
    }
    if no_cache:
        headers["Cache-Control"] = "no-cache"
        headers["Pragma"] = "no-cache"

    try:
        if client is not None:
            response = await client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(
                timeout=settings.REQUEST_TIMEOUT,
                follow_redirects=True
            ) as own_client:
                response = await own_client.get(url, headers=headers)
    except httpx.TimeoutException:
        raise UpstreamError(f"Timeout while fetching {url}")
    except httpx.HTTPError as e:
        raise UpstreamError(f"Failed to fetch {url}: {str(e)}")

    if not response.is_success:
        raise UpstreamError(
            f"HTTP error {response.status_code} for {url}",
            status_code=response.status_code
        )

    return FetchResult(
        url=url,
        status_code=response.status_code,
        body=response.text,
        fetched_at=dt.datetime.now(dt.timezone.utc).isoformat(timespec="seconds"),
    )

def parse_quote(body: str) -> Quote:
    """
    Parse a ZenQuotes response body.
    The provider answers with a JSON list holding a single {q, a} object.
    """
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Response is not valid JSON: {str(e)}") from e

    if not isinstance(data, list) or not data:
        raise ParseError("Expected a non-empty JSON list")

    try:
        return UpstreamQuote.model_validate(data[0]).to_quote()
    except ValidationError as e:
        raise ParseError(f"Unexpected quote shape: {data[0]!r}") from e

def parse_result(result: FetchResult) -> Quote:
    """Parse a fetched body, reporting where and when it came from"""
    try:
        quote = parse_quote(result.body)
    except ParseError as e:
        print(f"PARSE ERROR for {result.url} (HTTP {result.status_code}, fetched {result.fetched_at}): {e}")
        raise
    print(f"FETCHED quote from {result.url} (HTTP {result.status_code}, fetched {result.fetched_at})")
    return quote

async def fetch_daily(client: Optional[httpx.AsyncClient] = None) -> Quote:
    """
    Fetch the quote of the day.
    Served from the local cache for DAILY_CACHE_TTL_HOURS, so repeated calls
    within that window may return the previously fetched quote.
    """
    if settings.USE_MOCK:
        return _mock_daily_quote()

    cached_payload = cache_db.get_quote(DAILY_CACHE_KIND, settings.DAILY_CACHE_TTL_HOURS)
    if cached_payload:
        try:
            quote = Quote.model_validate_json(cached_payload)
            print("CACHE HIT for daily quote")
            return quote
        except ValidationError:
            print("CACHE CORRUPTED for daily quote, proceeding with fresh fetch")

    result = await fetch_raw(TODAY_PATH, client=client)
    quote = parse_result(result)

    cache_db.set_quote(DAILY_CACHE_KIND, quote.model_dump_json())
    print(f"CACHED daily quote by {quote.author}")
    return quote

async def fetch_random(client: Optional[httpx.AsyncClient] = None) -> Quote:
    """Fetch a random quote. Never cached: every call goes to the network."""
    if settings.USE_MOCK:
        return random.choice(_MOCK_QUOTES)

    result = await fetch_raw(RANDOM_PATH, no_cache=True, client=client)
    return parse_result(result)

_MOCK_QUOTES = [
    Quote(text="The journey of a thousand miles begins with one step.", author="Lao Tzu"),
    Quote(text="Well begun is half done.", author="Aristotle"),
    Quote(text="What we think, we become.", author="Buddha"),
    Quote(text="Simplicity is the ultimate sophistication.", author="Leonardo da Vinci"),
    Quote(text="It always seems impossible until it's done.", author="Nelson Mandela"),
]

def _mock_daily_quote() -> Quote:
    """Deterministic quote per calendar day for testing without network requests"""
    return _MOCK_QUOTES[dt.date.today().toordinal() % len(_MOCK_QUOTES)]
