from __future__ import annotations
import asyncio
import structlog
from rq import Queue
from redis import Redis

from challist.config import settings
from challist.services.auditor import PlacementAuditor
from challist.store import get_store

log = structlog.get_logger()


async def _run(repair: bool) -> dict:
    auditor = PlacementAuditor(get_store())
    dx = await auditor.diagnose()
    if dx.clean or not repair:
        return {"total": dx.total, "issues": len(dx.issues), "repaired": 0, "clean": dx.clean}
    result = await auditor.repair(dry_run=False)
    # confirm convergence; a partial repair shows up here
    clean = await auditor.verify()
    log.info("audit_job.done", repaired=result.repaired, clean=clean)
    return {"total": dx.total, "issues": len(dx.issues), "repaired": result.repaired, "clean": clean}


def audit_placements(repair: bool = False) -> dict:
    # RQ entry point (sync); run the async coroutine
    return asyncio.run(_run(repair))


def enqueue_audit(repair: bool = False) -> str | None:
    """Queue an out-of-band audit. Returns the job id, or None when redis is down."""
    try:
        q = Queue("default", connection=Redis.from_url(settings.redis_url))
        return q.enqueue(audit_placements, repair, job_timeout=60).id
    except Exception as e:
        # non-fatal; the write that triggered this already happened
        log.warning("audit_job.enqueue_failed", error=str(e))
        return None


def audit_after_write() -> None:
    if settings.audit_after_write:
        enqueue_audit(repair=False)
