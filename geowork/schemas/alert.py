from typing import Optional

from pydantic import Field

from .base import Document, UtcDatetime
from .session import new_id


class GeofenceAlert(Document):
    id: str = Field(default_factory=new_id)
    employee_id: str
    company_id: str
    job_site_id: str
    distance: float = 0  # meters from the site centre
    first_detected: UtcDatetime
    last_seen: UtcDatetime
    last_push_at: Optional[UtcDatetime] = None
    active: bool = True
    resolved_at: Optional[UtcDatetime] = None
