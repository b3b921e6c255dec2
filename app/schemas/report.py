from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ReportReason = Literal["abuse", "hate", "harassment", "spam", "misinformation"]


class ReportCreate(BaseModel):
    reason: ReportReason
    notes: Optional[str] = Field(None, max_length=500)

    def as_text(self) -> str:
        notes = (self.notes or "").strip()
        return f"{self.reason}: {notes}" if notes else self.reason


class ReporterInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    email: str


class ReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    reason: Optional[str] = None
    created_at: datetime
    reporter: ReporterInfo


class PostReportsResponse(BaseModel):
    post_id: int
    report_count: int
    reports: List[ReportResponse]
