from dataclasses import dataclass
from typing import Optional

@dataclass
class FetchResult:
    url: str
    status_code: int
    body: str
    fetched_at: str  # ISO 8601

class QuoteFetchError(Exception):
    """Base class for failures talking to the quote provider"""

class UpstreamError(QuoteFetchError):
    """Non-2xx response, timeout or transport failure"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

class ParseError(QuoteFetchError):
    """Response body is not a single-element list of {q, a} objects"""
