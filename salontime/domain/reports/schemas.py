"""Report domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

REPORT_REASONS = ("spam", "harassment", "inappropriate", "fake", "hateful", "suicidal", "other")


class ReportCreate(BaseModel):
    reason: Optional[str] = None
    description: Optional[str] = None


class ReportResponse(BaseModel):
    id: str
    review_id: str
    reporter_id: Optional[str] = None
    reportee_id: str
    reason: str
    description: Optional[str] = None
    status: str
    ai_flagged: bool
    human_action_required: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
