from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional, Sequence
from migrator.core.workflow import TargetKind
from migrator.generators.base import BaseEmitter, ProjectContext, Record
from migrator.generators.registry import EmitterRegistry
from migrator.generators.types import ClassifiedUnit, ConversionArtifact, SkippedRecord, TargetReport

log = logging.getLogger(__name__)

TEMPLATE_NOT_SUPPLIED = "template not supplied"


class ConversionEngine:
    """Dispatches classified records to the emitters of the requested targets.

    Every record is converted on its own: an exception from one record is
    logged and reported as skipped, and the batch carries on.
    """

    def __init__(self, registry: Optional[EmitterRegistry] = None, run_id: str = "-"):
        self.registry = registry or EmitterRegistry.default()
        self.run_id = run_id

    def _convert_record(self, emitter: BaseEmitter, record: Record, context: ProjectContext,
                        report: TargetReport) -> None:
        name = record.name
        try:
            artifacts = emitter.convert(record, context)
        except Exception as e:
            log.warning(f"Skipping {name}: {e}", extra={"run_id": self.run_id, "target": report.target.value})
            report.skipped.append(SkippedRecord(target=report.target.value, name=name, reason=str(e)))
            report.skipped_count += 1
            return
        report.artifacts.extend(artifacts)
        report.emitted_count += 1

    def convert_unit(self, classified: ClassifiedUnit, template_names: Sequence[str],
                     targets: Sequence[TargetKind], context: ProjectContext) -> Dict[TargetKind, TargetReport]:
        """Convert one unit's functions and the templates it references."""
        reports = {target: TargetReport(target=target) for target in targets}

        for target in targets:
            emitter = self.registry.get(target)
            report = reports[target]
            if emitter.accepts_templates:
                for name in template_names:
                    template = context.templates_by_name.get(name)
                    if template is None:
                        log.warning(f"Template {name} referenced by {classified.unit.filename} was not supplied",
                                    extra={"run_id": self.run_id, "target": target.value})
                        report.skipped.append(SkippedRecord(target=target.value, name=name, reason=TEMPLATE_NOT_SUPPLIED))
                        report.skipped_count += 1
                        continue
                    self._convert_record(emitter, template, context, report)
            else:
                for record in classified.functions:
                    if emitter.accepts_record(record):
                        self._convert_record(emitter, record, context, report)

            log.info(f"{classified.unit.filename}: {report.emitted_count} emitted, {report.skipped_count} skipped",
                     extra={"run_id": self.run_id, "target": target.value})
        return reports


def merge_reports(batches: Iterable[Dict[TargetKind, TargetReport]],
                  targets: Sequence[TargetKind]) -> Dict[TargetKind, TargetReport]:
    """Fold per-unit reports into one report per target."""
    merged = {target: TargetReport(target=target) for target in targets}
    for batch in batches:
        for target, report in batch.items():
            total = merged[target]
            total.emitted_count += report.emitted_count
            total.skipped_count += report.skipped_count
            total.artifacts.extend(report.artifacts)
            total.skipped.extend(report.skipped)
    return merged


def all_artifacts(reports: Dict[TargetKind, TargetReport]) -> List[ConversionArtifact]:
    return [artifact for report in reports.values() for artifact in report.artifacts]
