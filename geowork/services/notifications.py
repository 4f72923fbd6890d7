"""
Push notification service.
Builds topic, title and body from templates, respects the employee's consent
snapshot and the global push switch, and hands delivery to a worker pool.
"""
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional

import structlog

from ..config import settings
from ..push.provider import PushProvider
from ..schemas.reference import NotificationConsent
from ..schemas.session import ScheduleSession

logger = structlog.get_logger(__name__)

EMPLOYEE = "employee"
ADMINS = "admins"

EMPLOYEE_TITLES = {
    "session_starting": "Schedule Starting Soon",
    "auto_clock_in": "Automatically Clocked In",
    "auto_clock_out": "Automatically Clocked Out",
    "break_started": "Break Started",
    "break_ended": "Break Ended",
    "break_recommended": "Break Recommended",
    "schedule_ended": "Schedule Completed",
    "overtime_started": "Overtime Started",
}

ADMIN_TITLES = {
    "overtime_detected": "Overtime Alert",
    "compliance_violations": "Attendance Violations",
    "session_errors": "System Issues",
}

# consent flag gating each employee notification type; unlisted types always send
CONSENT_FLAGS = {
    "session_starting": "notify_on_session_start",
    "auto_clock_in": "notify_on_auto_clock_in",
    "auto_clock_out": "notify_on_auto_clock_out",
    "break_started": "notify_on_break_detection",
    "break_ended": "notify_on_break_detection",
    "break_recommended": "notify_on_break_detection",
    "schedule_changed": "notify_on_schedule_change",
    "overtime_started": "notify_on_overtime_start",
}


def employee_topic(employee_id: str) -> str:
    return f"user_{employee_id}"


def admin_topic(company_id: str) -> str:
    return f"company_{company_id}_admins"


def employee_body(type: str, data: Dict[str, Any]) -> str:
    site = data.get("jobSiteName", "")
    if type == "session_starting":
        return f"Your shift at {site} starts soon"
    if type == "auto_clock_in":
        return f"You've been clocked in at {site}"
    if type == "auto_clock_out":
        return f"You've been clocked out from {site}"
    if type == "break_started":
        return data.get("reason") or "Your break has started"
    if type == "break_ended":
        return f"Break ended after {data.get('duration', 0)} minutes"
    if type == "break_recommended":
        return f"You've worked {int(data.get('workDuration', 0)) // 60} hours. Consider taking a break."
    if type == "schedule_ended":
        return f"Your shift at {site} has ended"
    if type == "overtime_started":
        return f"You're now in overtime at {site}"
    return "Work status update"


def admin_body(type: str, data: Dict[str, Any]) -> str:
    if type == "overtime_detected":
        return (
            f"{data.get('employeeName')} is in overtime at {data.get('jobSiteName')} "
            f"({data.get('overtimeMinutes')} min)"
        )
    if type == "compliance_violations":
        return f"{len(data.get('violations', []))} attendance violations detected"
    if type == "session_errors":
        return "System errors detected in active sessions"
    return "System notification"


def should_send_notification(consent: Optional[NotificationConsent], type: str) -> bool:
    """Check the employee's consent snapshot for a notification type."""
    if consent is None:
        return True
    flag = CONSENT_FLAGS.get(type)
    if flag is None:
        return True
    return bool(getattr(consent, flag))


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


@dataclass
class Notice:
    """A notification waiting for its write to be applied before it is sent."""
    audience: str  # employee|admins
    recipient_id: str  # employee id or company id
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    consent: Optional[NotificationConsent] = None
    title: Optional[str] = None
    body: Optional[str] = None

    @property
    def topic(self) -> str:
        if self.audience == EMPLOYEE:
            return employee_topic(self.recipient_id)
        return admin_topic(self.recipient_id)

    def render(self) -> Dict[str, Any]:
        if self.audience == EMPLOYEE:
            title = self.title or EMPLOYEE_TITLES.get(self.type, "Work Update")
            body = self.body or employee_body(self.type, self.data)
        else:
            title = self.title or ADMIN_TITLES.get(self.type, "System Alert")
            body = self.body or admin_body(self.type, self.data)
        data = {"type": self.type, **_jsonable(self.data)}
        if self.audience == ADMINS:
            data["companyId"] = self.recipient_id
        return {"topic": self.topic, "title": title, "body": body, "data": data}


def employee_notice(session: ScheduleSession, type: str, **data: Any) -> Notice:
    payload = {"sessionId": session.id, "jobSiteName": session.job_site_name}
    payload.update(data)
    return Notice(
        audience=EMPLOYEE,
        recipient_id=session.employee_id,
        type=type,
        data=payload,
        consent=session.employee_notifications,
    )


def admin_notice(company_id: str, type: str, **data: Any) -> Notice:
    return Notice(audience=ADMINS, recipient_id=company_id, type=type, data=data)


class Notifier:
    """
    Fire-and-forget dispatcher.

    Sends are submitted to `executor`; with no executor they run inline,
    which is what tests use. Delivery failures are logged, never raised.
    """

    def __init__(
        self,
        provider: PushProvider,
        executor: Optional[Executor] = None,
        enabled: Optional[bool] = None,
    ):
        self.provider = provider
        self.executor = executor
        self.enabled = settings.enable_push if enabled is None else enabled

    @classmethod
    def pooled(cls, provider: PushProvider) -> "Notifier":
        pool = ThreadPoolExecutor(max_workers=settings.push_workers, thread_name_prefix="push")
        return cls(provider, executor=pool)

    def dispatch(self, notices: Iterable[Notice]) -> int:
        """Queue every eligible notice; returns how many were queued."""
        queued = 0
        for notice in notices:
            if not self.enabled:
                continue
            if notice.audience == EMPLOYEE and not should_send_notification(notice.consent, notice.type):
                logger.debug("notification_suppressed", type=notice.type, employee_id=notice.recipient_id)
                continue
            try:
                message = notice.render()
            except Exception as e:
                logger.error("notification_dispatch_failed", type=notice.type, error=str(e))
                continue
            if self.executor is None:
                self._send(message)
            else:
                self.executor.submit(self._send, message)
            queued += 1
        return queued

    def _send(self, message: Dict[str, Any]) -> None:
        try:
            self.provider.send(message["topic"], message["title"], message["body"], message["data"])
            logger.info("notification_sent", topic=message["topic"], type=message["data"]["type"])
        except Exception as e:
            logger.error("notification_dispatch_failed", topic=message["topic"],
                         type=message["data"]["type"], error=str(e))

    def shutdown(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=True)
