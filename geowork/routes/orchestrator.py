from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from ..deps import get_orchestrator
from ..services.orchestrator import ScheduleOrchestrator

router = APIRouter(prefix="/orchestrator", tags=["orchestrator"])


@router.post("/run")
async def run_orchestrator(orchestrator: ScheduleOrchestrator = Depends(get_orchestrator)):
    """
    Periodic trigger target. Runs one orchestrator pass and returns its report.

    Always answers 200; failures are reported per step in the body.
    """
    report = await run_in_threadpool(orchestrator.run)
    return {"ok": report.ok, **report.to_document()}
