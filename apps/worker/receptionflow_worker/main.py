import logging
import uuid
from dataclasses import asdict

from celery import Celery

from app.db import SessionLocal
from app.logging_setup import configure_logging
from app.services.reschedule_escalation import SweepRun, run_escalation_sweep
from app.settings import settings

configure_logging()
logger = logging.getLogger(__name__)

broker_url = settings.redis_url
app = Celery("receptionflow-worker", broker=broker_url, backend=broker_url)
app.conf.beat_schedule = {
    "reschedule-escalation-tick": {
        "task": "worker.reception.reschedule_escalation_tick",
        "schedule": float(settings.escalation_sweep_interval_seconds),
    },
}


def _summarize_run(run: SweepRun) -> dict[str, object]:
    return {
        "mode": run.mode,
        "dry_run": run.dry_run,
        "generated_at": run.generated_at.isoformat(),
        "totals": asdict(run.totals),
        "notes": list(run.notes),
    }


@app.task(name="worker.health.ping")
def ping() -> str:
    return "pong"


@app.task(name="worker.reception.reschedule_escalation_tick")
def reschedule_escalation_tick(
    dry_run: bool = False,
    limit_tenants: int | None = None,
    max_rows: int | None = None,
    tenant_id: str | None = None,
) -> dict[str, object]:
    target = uuid.UUID(tenant_id) if tenant_id else None
    if SessionLocal is None:
        run = run_escalation_sweep(db=None, tenant_id=target, dry_run=dry_run)
    else:
        with SessionLocal() as db:
            run = run_escalation_sweep(
                db=db,
                tenant_id=target,
                dry_run=dry_run,
                limit_tenants=limit_tenants,
                max_rows=max_rows,
            )
    summary = _summarize_run(run)
    logger.info("reschedule escalation tick finished", extra=summary)
    return summary
