from __future__ import annotations
import logging
from sqlalchemy.orm import Session
from migrator.tasks.celery_app import celery_app
from migrator.db.session import SessionLocal
from migrator.db.models import ConversionRun
from migrator.core.pipeline import MigrationPipeline
from migrator.core.workflow import RunStage, RunStatus
from migrator.generators.types import SourceUnit, TemplateRecord
from migrator.schemas.runs import RunCreateRequest

log = logging.getLogger(__name__)


def execute_run(db: Session, run_id: str) -> None:
    """Run the pipeline for a stored ConversionRun, recording each stage as it starts."""
    run = db.get(ConversionRun, run_id)
    if not run:
        log.error("Run not found", extra={"run_id": run_id})
        return

    run.status = RunStatus.RUNNING
    db.commit()

    req = RunCreateRequest.model_validate(run.request)
    units = [SourceUnit(filename=u.filename, raw_text=u.raw_text) for u in req.source_units]
    templates = [TemplateRecord(filename=t.filename, raw_markup=t.raw_markup) for t in req.templates]

    def on_stage(stage: RunStage) -> None:
        run.stage = stage
        db.commit()

    log.info("Starting run", extra={"run_id": run_id})
    result = MigrationPipeline(on_stage=on_stage).run(units, templates, req.options, run_id=run_id)

    run.result = result.model_dump(mode="json")
    if result.success:
        run.status = RunStatus.DONE
        run.stage = RunStage.DONE
        log.info("Run completed successfully", extra={"run_id": run_id})
    else:
        run.status = RunStatus.FAILED
        run.stage = RunStage.FAILED
        run.error_message = result.error
    db.commit()


@celery_app.task(name="run_conversion")
def run_conversion(run_id: str) -> None:
    db: Session = SessionLocal()
    try:
        execute_run(db, run_id)
    except Exception as e:
        db.rollback()
        log.exception("Run failed", extra={"run_id": run_id})
        run = db.get(ConversionRun, run_id)
        if run:
            run.status = RunStatus.FAILED
            run.stage = RunStage.FAILED
            run.error_message = str(e)
            db.commit()
    finally:
        db.close()
