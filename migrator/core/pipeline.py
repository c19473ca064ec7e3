from __future__ import annotations
import logging
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set
from migrator.analyzer.source_classifier import classify_source_unit
from migrator.core.engine import ConversionEngine, all_artifacts, merge_reports
from migrator.core.errors import OutputConflict, PathCollision
from migrator.core.workflow import RunStage, TargetKind
from migrator.generators.base import ProjectContext, find_async_functions
from migrator.generators.project_gen.assembler import assemble
from migrator.generators.project_gen.writer import write_project
from migrator.generators.registry import EmitterRegistry
from migrator.generators.types import (
    ClassifiedUnit,
    FunctionRecord,
    SourceUnit,
    TargetReport,
    TemplateRecord,
    TriggerInstallation,
)
from migrator.generators.utils import IdentifierTable
from migrator.schemas.runs import RunOptions, RunResult, SkippedOut, TargetSummary

log = logging.getLogger(__name__)


def build_context(classified: Sequence[ClassifiedUnit], templates: Sequence[TemplateRecord],
                  options: RunOptions, run_id: str = "-") -> ProjectContext:
    """Collect every name of the run and freeze the identifier table before any emitter runs."""
    functions: Dict[str, FunctionRecord] = {}
    installations: Dict[str, TriggerInstallation] = {}
    for unit in classified:
        for record in unit.functions:
            if record.name in functions:
                log.warning(f"Function {record.name} is declared in {functions[record.name].source_filename} "
                            f"and {unit.unit.filename}", extra={"run_id": run_id})
                continue
            functions[record.name] = record
        for name, installation in unit.trigger_installations.items():
            installations.setdefault(name, installation)

    templates_by_name: Dict[str, TemplateRecord] = {}
    for template in templates:
        if template.name in templates_by_name:
            log.warning(f"Template {template.name} supplied twice; keeping the first", extra={"run_id": run_id})
            continue
        templates_by_name[template.name] = template

    return ProjectContext(
        identifiers=IdentifierTable.build(functions, templates_by_name),
        persistence=options.persistence,
        project_name=options.project_name,
        functions=functions,
        templates_by_name=templates_by_name,
        trigger_installations=installations,
        async_functions=find_async_functions(functions),
    )


class MigrationPipeline:
    """classify -> identifier table -> emit -> assemble -> write."""

    def __init__(self, registry: Optional[EmitterRegistry] = None,
                 on_stage: Optional[Callable[[RunStage], None]] = None):
        self.registry = registry or EmitterRegistry.default()
        self.on_stage = on_stage

    def _set_stage(self, stage: RunStage, run_id: str) -> None:
        log.info(f"Stage {stage.value}", extra={"run_id": run_id})
        if self.on_stage is not None:
            self.on_stage(stage)

    def run(self, source_units: Sequence[SourceUnit], templates: Sequence[TemplateRecord],
            options: RunOptions, run_id: Optional[str] = None) -> RunResult:
        run_id = run_id or uuid.uuid4().hex
        targets: List[TargetKind] = list(options.targets)

        self._set_stage(RunStage.CLASSIFY, run_id)
        classified = [classify_source_unit(unit) for unit in source_units]

        self._set_stage(RunStage.BUILD_IDENTIFIERS, run_id)
        context = build_context(classified, templates, options, run_id)
        referenced: Set[str] = set()
        for unit in classified:
            referenced |= unit.template_references

        self._set_stage(RunStage.EMIT, run_id)
        engine = ConversionEngine(self.registry, run_id=run_id)
        converted: Set[str] = set()
        batches = []
        for unit in classified:
            # Each template is converted once per run, for the first unit referencing it
            names = sorted(unit.template_references - converted)
            converted |= set(names)
            batches.append(engine.convert_unit(unit, names, targets, context))
        reports = merge_reports(batches, targets)

        skipped = [s for report in reports.values() for s in report.skipped]
        result = RunResult(
            success=False,
            run_id=run_id,
            output_path=str(Path(options.output_root)),
            summary=_summary(reports),
            skipped=[SkippedOut(target=s.target, name=s.name, reason=s.reason) for s in skipped],
            unreferenced_templates=sorted(set(context.templates_by_name) - referenced),
        )

        try:
            self._set_stage(RunStage.ASSEMBLE, run_id)
            project = assemble(all_artifacts(reports), targets, options.persistence, options.project_name,
                               context.identifiers, skipped)

            self._set_stage(RunStage.WRITE, run_id)
            written = write_project(project.files, Path(options.output_root), options.overwrite)
        except (PathCollision, OutputConflict) as e:
            log.error(f"Run failed: {e}", extra={"run_id": run_id})
            self._set_stage(RunStage.FAILED, run_id)
            return result.model_copy(update={"error": str(e)})

        self._set_stage(RunStage.DONE, run_id)
        return result.model_copy(update={
            "success": True,
            "written": written,
            "manifest": asdict(project.manifest),
        })


def _summary(reports: Dict[TargetKind, TargetReport]) -> Dict[str, TargetSummary]:
    return {
        target.value: TargetSummary(emitted=report.emitted_count, skipped=report.skipped_count)
        for target, report in reports.items()
    }
