"""Error payloads returned by the console API server."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """JSON body of every non-2xx response.

    Attributes
    ----------
    status : int
        The HTTP status code.
    message : str
        A short human-readable summary; consoles show it verbatim.
    detail : str | None
        Underlying cause (broker error text), when there is one.
    """

    status: int = Field(..., ge=400, le=599)
    message: str
    detail: Optional[str] = None


class ApiError(Exception):
    """Raise inside services/routers to produce an :class:`ErrorResponse`."""

    def __init__(self, status_code: int, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.error = ErrorResponse(status=status_code, message=message, detail=detail)

    @property
    def status_code(self) -> int:
        return self.error.status
