from pydantic import BaseModel, Field, field_validator
from typing import Literal, Optional, Dict, Any, List
from migrator.core.workflow import RunStage, RunStatus, TargetKind

Persistence = Literal["postgres", "mysql", "sqlite", "mongo", "none"]


class RunOptions(BaseModel):
    targets: List[TargetKind] = Field(default_factory=lambda: list(TargetKind), min_length=1)
    persistence: Persistence = "postgres"
    output_root: str = "out"
    overwrite: bool = False
    project_name: str = Field("migrated-app", min_length=1, examples=["expense-tracker"])

    @field_validator("targets")
    @classmethod
    def _dedupe_targets(cls, value: List[TargetKind]) -> List[TargetKind]:
        return list(dict.fromkeys(value))


class SourceUnitIn(BaseModel):
    filename: str = Field(..., examples=["Code.gs"])
    raw_text: str


class TemplateIn(BaseModel):
    filename: str = Field(..., examples=["Index.html"])
    raw_markup: str


class RunCreateRequest(BaseModel):
    source_units: List[SourceUnitIn] = Field(..., min_length=1)
    templates: List[TemplateIn] = []
    options: RunOptions = Field(default_factory=RunOptions)


class TargetSummary(BaseModel):
    emitted: int = 0
    skipped: int = 0


class SkippedOut(BaseModel):
    target: str
    name: str
    reason: str


class RunResult(BaseModel):
    success: bool
    run_id: str
    output_path: Optional[str] = None
    written: bool = False
    summary: Dict[str, TargetSummary] = {}
    skipped: List[SkippedOut] = []
    unreferenced_templates: List[str] = []
    error: Optional[str] = None
    manifest: Optional[Dict[str, Any]] = None


class RunResponse(BaseModel):
    id: str
    project_name: str
    targets: List[str]
    persistence: str
    stage: RunStage
    status: RunStatus
    error_message: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
