import re
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse

from app.cache import db as cache_db
from app.core.config import settings
from app.gate.store import SqliteSessionStore
from app.pages import composer
from app.schemas import CooldownStatus, PresenterState, QuoteView
from app.services import quote_views

router = APIRouter()

SESSION_ID_RE = re.compile(r"^[0-9a-f]{32}$")

def get_session_id(request: Request) -> str:
    """Session id from the cookie, or a fresh one for a new browsing session"""
    value = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if value and SESSION_ID_RE.match(value):
        return value
    return uuid.uuid4().hex

def with_session(response: Response, session_id: str) -> Response:
    # No max_age: the cookie, and with it the cooldown, ends with the browser session
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        session_id,
        httponly=True,
        samesite="lax",
    )
    return response

@router.get("/", response_class=HTMLResponse)
async def daily_quote_page(request: Request, session_id: str = Depends(get_session_id)):
    """Quote of the day with today's date"""
    view = await quote_views.daily_view(session_id)
    return with_session(composer.daily_page(request, view), session_id)

@router.get("/random", response_class=HTMLResponse)
async def random_quote_page(request: Request, session_id: str = Depends(get_session_id)):
    """Random quote with the refresh control"""
    view = await quote_views.random_view(session_id)
    return with_session(composer.random_page(request, view), session_id)

@router.post("/random", response_class=HTMLResponse)
async def refresh_random_quote_page(request: Request, session_id: str = Depends(get_session_id)):
    """Form fallback of the refresh button"""
    outcome = await quote_views.refresh_random_quote(session_id)
    response = composer.random_page(request, outcome.view, status_code=outcome.status_code)
    if outcome.status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        response.headers["Retry-After"] = str(outcome.view.remaining)
    return with_session(response, session_id)

@router.post("/api/quote/refresh", response_model=QuoteView)
async def refresh_random_quote(session_id: str = Depends(get_session_id)):
    """
    Fetch a new random quote for this session.

    Returns 429 with Retry-After while the cooldown runs (no upstream call is
    made) and 502 when the quote provider fails; in both cases the current
    quote is returned unchanged and no cooldown is consumed.
    """
    outcome = await quote_views.refresh_random_quote(session_id)
    response = JSONResponse(
        content=outcome.view.model_dump(mode="json"),
        status_code=outcome.status_code
    )
    if outcome.status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        response.headers["Retry-After"] = str(outcome.view.remaining)
    return with_session(response, session_id)

@router.get("/api/cooldown", response_model=CooldownStatus)
async def cooldown(session_id: str = Depends(get_session_id)):
    """Cooldown state of this session"""
    result = CooldownStatus(**quote_views.cooldown_status(session_id))
    return with_session(JSONResponse(content=result.model_dump()), session_id)

@router.get("/api/cooldown/stream")
async def cooldown_stream(session_id: str = Depends(get_session_id)):
    """Server-Sent Events: one quote view per countdown tick until the gate unlocks"""
    initial = await quote_views.current_quote(SqliteSessionStore(session_id))

    async def event_stream():
        presenter = quote_views.build_presenter(session_id, initial, live=True)
        async with presenter:
            queue = presenter.subscribe()
            view = presenter.view()
            yield f"data: {view.model_dump_json()}\n\n"
            while view.state is PresenterState.LOCKED:
                view = await queue.get()
                yield f"data: {view.model_dump_json()}\n\n"

    response = StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"}
    )
    return with_session(response, session_id)

@router.get("/api")
async def service_info():
    """Basic service info"""
    return {
        "service": "InspireFlow Quotes",
        "version": "1.0.0",
        "endpoints": {
            "daily": "GET /",
            "random": "GET /random",
            "refresh": "POST /api/quote/refresh",
            "cooldown": "GET /api/cooldown",
            "cooldown_stream": "GET /api/cooldown/stream",
            "health": "GET /health",
            "cache_stats": "GET /cache/stats"
        }
    }

@router.get("/cache/stats")
async def cache_statistics():
    """Get cache statistics for debugging"""
    return quote_views.get_cache_stats()

@router.delete("/cache/clear")
async def clear_cache():
    """Clear cached quotes; session cooldowns are kept"""
    try:
        cache_db.clear_quotes()
        return {"message": "Cache cleared successfully"}
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear cache: {str(e)}"
        )

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "InspireFlow Quotes"}
