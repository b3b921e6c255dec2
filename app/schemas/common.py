# app/schemas/common.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.errors import ModerationError


class ActionResult(BaseModel):
    """Outcome of a mutating operation: success flag plus a readable message."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    message: str
    error: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    # Not part of the response body
    status_code: int = Field(default=200, exclude=True)
    events: List[Any] = Field(default_factory=list, exclude=True)

    @classmethod
    def ok(
        cls,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        events: Optional[List[Any]] = None,
    ) -> "ActionResult":
        return cls(success=True, message=message, data=data, events=events or [])

    @classmethod
    def failed(cls, error: ModerationError) -> "ActionResult":
        return cls(
            success=False,
            message=error.message,
            error=error.code,
            status_code=error.status_code,
        )

