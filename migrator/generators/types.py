"""Dataclasses shared by the classifier, emitters and assembler."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Any
from migrator.core.workflow import Classification, TargetKind


@dataclass(frozen=True)
class SourceUnit:
    """One fetched server-side script file."""
    filename: str
    raw_text: str


@dataclass(frozen=True)
class TemplateRecord:
    """One fetched HTML template, referenced by name from source units."""
    filename: str
    raw_markup: str

    @property
    def name(self) -> str:
        """Template name without the .html extension."""
        return template_name(self.filename)


@dataclass(frozen=True)
class FunctionRecord:
    """A top-level function extracted from a SourceUnit."""
    name: str
    param_names: Tuple[str, ...]
    body_text: str
    classification: Classification
    source_filename: str = ""


@dataclass(frozen=True)
class TriggerInstallation:
    """A ScriptApp.newTrigger(...) builder chain found in the source."""
    function_name: str
    event_type: Optional[str] = None  # ON_EDIT, ON_OPEN, ... or CLOCK
    frequency: Optional[str] = None  # MINUTES, HOURLY, DAILY, ...


@dataclass(frozen=True)
class TriggerDescriptor:
    """How a Trigger record is re-expressed in the job layer."""
    event_type: str
    conversion_kind: str  # "webhook-intake", "scheduled-job" or "queue-processor"
    schedule_expression: Optional[str] = None


@dataclass(frozen=True)
class Identifiers:
    """Names derived once per source name and reused by every emitter."""
    name: str
    stem: str
    slug: str
    camel: str
    pascal: str


@dataclass(frozen=True)
class ConversionArtifact:
    """One emitted file."""
    kind: str
    target_path: str  # Relative to the output root
    content: str
    declared_dependencies: Tuple[str, ...] = ()
    target: Optional[TargetKind] = None
    source_name: str = ""


@dataclass(frozen=True)
class ClassifiedUnit:
    """Everything the classifier learned about one SourceUnit."""
    unit: SourceUnit
    functions: List[FunctionRecord]
    template_references: frozenset
    trigger_installations: Dict[str, TriggerInstallation]


@dataclass(frozen=True)
class SkippedRecord:
    target: str
    name: str
    reason: str


@dataclass
class TargetReport:
    """Per-target outcome of one conversion pass."""
    target: TargetKind
    emitted_count: int = 0
    skipped_count: int = 0
    artifacts: List[ConversionArtifact] = field(default_factory=list)
    skipped: List[SkippedRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ProjectManifest:
    """Describes the assembled tree; built once every artifact is known."""
    directory_tree: Dict[str, Any]
    dependency_list: Dict[str, Any]
    config_values: Dict[str, Any]
    entry_points: Dict[str, str]


def template_name(filename: str) -> str:
    """Strip a trailing .html so 'Index.html' and 'Index' name the same template."""
    if filename.lower().endswith(".html"):
        return filename[: -len(".html")]
    return filename
