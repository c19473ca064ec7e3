import uuid
from pathlib import Path
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from migrator.core.config import settings
from migrator.db.session import get_db
from migrator.db.models import ConversionRun
from migrator.schemas.runs import RunCreateRequest, RunResponse
from migrator.tasks.runs import run_conversion

router = APIRouter(prefix="/runs")


def _response(run: ConversionRun) -> RunResponse:
    return RunResponse(
        id=run.id,
        project_name=run.project_name,
        targets=run.targets or [],
        persistence=run.persistence,
        stage=run.stage,
        status=run.status,
        error_message=run.error_message,
        result=run.result,
    )


@router.post("", response_model=RunResponse)
def create_run(req: RunCreateRequest, db: Session = Depends(get_db)):
    run_id = str(uuid.uuid4())
    # Runs submitted over HTTP always write into their own workspace directory
    options = req.options.model_copy(update={"output_root": str(Path(settings.workspaces_dir) / run_id)})
    payload = req.model_copy(update={"options": options})

    run = ConversionRun(
        id=run_id,
        project_name=options.project_name,
        targets=[t.value for t in options.targets],
        persistence=options.persistence,
        request=payload.model_dump(mode="json"),
    )
    db.add(run)
    db.commit()
    db.refresh(run)

    run_conversion.delay(run.id)

    return _response(run)


@router.get("/{run_id}", response_model=RunResponse)
def get_run(run_id: str, db: Session = Depends(get_db)):
    run = db.get(ConversionRun, run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return _response(run)
