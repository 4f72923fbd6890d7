from typing import Dict, List, Optional

from pydantic import Field

from .base import Document, UtcDatetime


class StepReport(Document):
    changed: int = 0
    notified: int = 0
    failures: List[str] = Field(default_factory=list)


class RunReport(Document):
    """Outcome of one orchestrator pass."""
    started_at: UtcDatetime
    finished_at: Optional[UtcDatetime] = None
    companies: int = 0
    steps: Dict[str, StepReport] = Field(default_factory=dict)
    failures: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures and all(not s.failures for s in self.steps.values())
