from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.api.routes import router
from app.cache import db as cache_db
from app.core.config import settings
from app.fetch.base import QuoteFetchError
from app.pages import composer

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Initialize resources on startup, cleanup on shutdown.
    """
    # Startup
    print("Initializing InspireFlow Quotes...")
    cache_db.init_db()
    cache_db.purge_stale_quotes(settings.DAILY_CACHE_TTL_HOURS)
    cache_db.purge_stale_sessions(settings.SESSION_TTL_HOURS)
    print("Database initialized successfully")

    yield

    # Shutdown
    print("Shutting down InspireFlow Quotes...")

app = FastAPI(
    title="InspireFlow Quotes",
    description="Daily and random quotes from ZenQuotes with a per-session request cooldown",
    version="1.0.0",
    lifespan=lifespan
)

@app.exception_handler(QuoteFetchError)
async def quote_fetch_error_handler(request: Request, exc: QuoteFetchError):
    """Initial page fetch failed: there is no fallback content to render"""
    print(f"UPSTREAM ERROR on {request.url.path}: {exc}")
    if request.url.path.startswith("/api"):
        return JSONResponse(
            status_code=502,
            content={"detail": f"Quote provider unavailable: {str(exc)}"}
        )
    return composer.error_page(request, "Quotes are unavailable right now. Please try again later.")

# Include API routes
app.include_router(router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
