import os

class Settings:
    # Database (daily quote cache + session store)
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "data/quotes.sqlite")

    # Upstream quote provider
    ZENQUOTES_BASE_URL: str = os.getenv("ZENQUOTES_BASE_URL", "https://zenquotes.io/api").rstrip("/")
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "10"))
    USER_AGENT: str = os.getenv("USER_AGENT", "InspireFlow/1.0 (+https://zenquotes.io/)")

    # Development
    USE_MOCK: bool = os.getenv("USE_MOCK", "0").lower() in ("1", "true", "yes")

    # Daily quote cache TTL in hours
    DAILY_CACHE_TTL_HOURS: int = int(os.getenv("DAILY_CACHE_TTL_HOURS", "24"))

    # Cooldown policy. The upstream budget is informational only.
    COOLDOWN_SECONDS: int = int(os.getenv("COOLDOWN_SECONDS", "7"))
    API_LIMIT_REQUESTS: int = int(os.getenv("API_LIMIT_REQUESTS", "5"))
    API_LIMIT_WINDOW_SECONDS: int = int(os.getenv("API_LIMIT_WINDOW_SECONDS", "30"))
    TICK_INTERVAL_SECONDS: float = float(os.getenv("TICK_INTERVAL_SECONDS", "1.0"))

    # Session / presentation
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "quote_session")
    SESSION_TTL_HOURS: int = int(os.getenv("SESSION_TTL_HOURS", "24"))
    DISPLAY_TIMEZONE: str = os.getenv("DISPLAY_TIMEZONE", "UTC")

settings = Settings()
