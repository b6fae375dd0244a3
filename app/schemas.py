from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, computed_field
from typing import Optional

class Quote(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Quote text")
    author: str = Field(description="Quote author")

class UpstreamQuote(BaseModel):
    """Raw quote object as returned by ZenQuotes (`h` and other extras are ignored)."""
    q: str
    a: str

    def to_quote(self) -> Quote:
        return Quote(text=self.q, author=self.a)

class PresenterState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOCKED = "locked"

class QuoteView(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: PresenterState
    quote: Quote
    remaining: int = Field(0, description="Cooldown seconds left, 0 when unlocked")
    error: Optional[str] = None
    show_button: bool = False

    @computed_field
    @property
    def button_disabled(self) -> bool:
        return self.state is not PresenterState.IDLE

    @computed_field
    @property
    def button_label(self) -> str:
        if self.state is PresenterState.LOADING:
            return "Loading..."
        if self.state is PresenterState.LOCKED:
            return f"Wait {self.remaining}s"
        return "Get new quote"

class CooldownStatus(BaseModel):
    locked: bool
    remaining: int
