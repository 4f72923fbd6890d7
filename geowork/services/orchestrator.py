"""
Schedule session orchestrator.

The periodic driver: every pass creates sessions for shifts about to start,
advances live sessions, completes finished ones, detects overtime, breaks and
no-shows, health-checks stale sessions and archives old ones. Each step runs
per company and commits its own batches; a failing step or company is logged
and reported without stopping the others.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import structlog

from ..config import Settings, settings as default_settings
from ..schemas.report import RunReport, StepReport
from ..store.provider import SessionStore
from .breaks import plan_breaks
from .changes import Change, RunContext, commit_in_batches
from .compliance import plan_no_shows, summarize_no_shows
from .health import plan_health_checks
from .lifecycle import plan_archive, plan_completions
from .metrics import LinearScoringPolicy, ScoringPolicy
from .notifications import Notice, Notifier
from .overtime import plan_overtime
from .presence import plan_presence
from .reference import ReferenceData
from .session_factory import plan_session_starts
from .time_rules import utcnow

logger = structlog.get_logger(__name__)

Planner = Callable[[RunContext, str], List[Change]]
Summarizer = Callable[[RunContext, str, List[Change]], List[Notice]]


@dataclass
class Step:
    name: str
    plan: Planner
    summarize: Optional[Summarizer] = None


STEPS: List[Step] = [
    Step("create_due_sessions", plan_session_starts),
    Step("advance_active_sessions", plan_presence),
    Step("complete_due_sessions", plan_completions),
    Step("detect_overtime", plan_overtime),
    Step("process_breaks", plan_breaks),
    Step("health_check", plan_health_checks),
    Step("detect_no_shows", plan_no_shows, summarize_no_shows),
    Step("archive_completed_sessions", plan_archive),
]


class ScheduleOrchestrator:
    def __init__(
        self,
        store: SessionStore,
        notifier: Notifier,
        config: Optional[Settings] = None,
        scoring: Optional[ScoringPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
        steps: Optional[List[Step]] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.config = config or default_settings
        self.scoring = scoring or LinearScoringPolicy()
        self.clock = clock
        self.steps = steps if steps is not None else STEPS

    def run(self) -> RunReport:
        now = self.clock()
        report = RunReport(started_at=now)
        log = logger.bind(run_at=now.isoformat())
        log.info("orchestrator_run_started")

        try:
            company_ids = self.store.list_company_ids()
        except Exception as e:
            log.exception("company_listing_failed")
            report.failures.append(f"list_companies: {e}")
            report.finished_at = self.clock()
            return report

        report.companies = len(company_ids)
        ctx = RunContext(
            store=self.store,
            refs=ReferenceData(self.store),
            now=now,
            scoring=self.scoring,
            config=self.config,
        )
        for step in self.steps:
            step_report = report.steps.setdefault(step.name, StepReport())
            for company_id in company_ids:
                self._run_step(ctx, step, company_id, step_report)

        report.finished_at = self.clock()
        log.info(
            "orchestrator_run_finished",
            companies=report.companies,
            changed={name: s.changed for name, s in report.steps.items() if s.changed},
            ok=report.ok,
        )
        return report

    def _run_step(self, ctx: RunContext, step: Step, company_id: str, step_report: StepReport) -> None:
        log = logger.bind(step=step.name, company_id=company_id)
        try:
            changes = step.plan(ctx, company_id)
            applied, failures = commit_in_batches(self.store, changes, self.config.batch_write_limit, step.name)
            notices = [n for change in applied for n in change.notices]
            if step.summarize is not None:
                notices.extend(step.summarize(ctx, company_id, applied))
        except Exception as e:
            log.exception("orchestrator_step_failed")
            step_report.failures.append(f"{company_id}: {e}")
            return

        step_report.changed += sum(1 for c in applied if c.write is not None)
        step_report.failures.extend(f"{company_id}: {f}" for f in failures)
        if applied:
            log.info("orchestrator_step_applied", changed=len(applied))
        step_report.notified += self.notifier.dispatch(notices)
