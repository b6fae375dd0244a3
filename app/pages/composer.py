from pathlib import Path
from typing import Optional
from datetime import datetime

from fastapi import Request
from fastapi.templating import Jinja2Templates

from app.core.config import settings
from app.core.timeutils import format_long_date
from app.schemas import QuoteView

RANDOM_PATH = "/random"
DAILY_PATH = "/"

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
templates.env.globals.update(
    settings=settings,
    daily_path=DAILY_PATH,
    random_path=RANDOM_PATH,
)

def daily_page(request: Request, view: QuoteView, now: Optional[datetime] = None, status_code: int = 200):
    """Header, today's date and the daily quote without a refresh control"""
    return templates.TemplateResponse(
        request,
        "daily.html",
        {"view": view, "current_path": DAILY_PATH, "today": format_long_date(now)},
        status_code=status_code,
    )

def random_page(request: Request, view: QuoteView, status_code: int = 200):
    """Header and a random quote with the refresh control"""
    return templates.TemplateResponse(
        request,
        "random.html",
        {"view": view, "current_path": RANDOM_PATH},
        status_code=status_code,
    )

def error_page(request: Request, message: str, status_code: int = 502):
    return templates.TemplateResponse(
        request,
        "error.html",
        {"message": message, "current_path": DAILY_PATH},
        status_code=status_code,
    )
