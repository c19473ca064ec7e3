from dataclasses import dataclass, field
import re
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union
from migrator.analyzer.source_classifier import find_matching
from migrator.core.errors import EmissionUnmappable
from migrator.core.workflow import Classification, TargetKind
from migrator.generators.rewrite_rules import (
    HOST_SERVICE_CALL,
    RewriteRuleTable,
    find_unmapped_host_calls,
    introduces_await,
)
from migrator.generators.types import ConversionArtifact, FunctionRecord, TemplateRecord, TriggerInstallation
from migrator.generators.utils import IdentifierTable

# Packages an emitted file needs, detected from its rewritten content
DEPENDENCY_MARKERS: List[Tuple[str, "re.Pattern"]] = [
    ("axios", re.compile(r"\baxios\b")),
    ("nodemailer", re.compile(r"\bmailer\.")),
    ("ioredis", re.compile(r"\bcache\.")),
    ("dotenv", re.compile(r"\bprocess\.env\b")),
    ("@react-native-picker/picker", re.compile(r"@react-native-picker/picker")),
]


def detect_dependencies(content: str) -> Tuple[str, ...]:
    return tuple(name for name, pattern in DEPENDENCY_MARKERS if pattern.search(content))


def _calls(name: str) -> "re.Pattern":
    return re.compile(rf"(?<![\w$.]){re.escape(name)}\s*\(")


def find_async_functions(functions: Dict[str, FunctionRecord]) -> FrozenSet[str]:
    """Utilities whose migrated form is ``async``.

    A utility is async when its own body awaits a service call, or when it
    calls another async utility. Iterates to a fixed point over the call graph.
    """
    utilities = {n: r for n, r in functions.items() if r.classification == Classification.UTILITY}
    found = {n for n, r in utilities.items() if introduces_await(r.body_text)}
    changed = True
    while changed:
        changed = False
        for name, record in utilities.items():
            if name in found:
                continue
            if any(_calls(callee).search(record.body_text) for callee in found):
                found.add(name)
                changed = True
    return frozenset(found)


def await_calls(text: str, names: Iterable[str]) -> str:
    """Rewrite every call to one of ``names`` as ``(await name(...))``."""
    for name in sorted(names):
        matches = list(_calls(name).finditer(text))
        # Back to front: a rewrite never moves the start of an earlier match
        for m in reversed(matches):
            before = text[:m.start()].rstrip()
            if before.endswith("await") or before.endswith("function"):
                continue
            close = find_matching(text, m.end() - 1, "(", ")")
            if close is None:
                continue
            text = f"{text[:m.start()]}(await {text[m.start():close + 1]}){text[close + 1:]}"
    return text


@dataclass(frozen=True)
class ProjectContext:
    """Read-only, run-wide input shared by every emitter."""
    identifiers: IdentifierTable
    persistence: str = "postgres"
    project_name: str = "migrated-app"
    functions: Dict[str, FunctionRecord] = field(default_factory=dict)
    templates_by_name: Dict[str, TemplateRecord] = field(default_factory=dict)
    trigger_installations: Dict[str, TriggerInstallation] = field(default_factory=dict)
    async_functions: FrozenSet[str] = frozenset()

    @property
    def function_names(self) -> List[str]:
        return sorted(self.functions)

    def classification_of(self, name: str) -> Optional[Classification]:
        record = self.functions.get(name)
        return record.classification if record else None

    def called_functions(self, body_text: str, exclude: str = "") -> List[str]:
        """Known top-level functions called from ``body_text``, sorted."""
        called = set()
        for name in self.functions:
            if name != exclude and _calls(name).search(body_text):
                called.add(name)
        return sorted(called)


Record = Union[FunctionRecord, TemplateRecord]


class BaseEmitter:
    """Turns one record into the artifacts of one target.

    ``convert`` must be deterministic in the record and the context, and must
    take every derived name from ``context.identifiers``.
    """
    target: TargetKind
    accepts: FrozenSet[Classification] = frozenset()
    accepts_templates: bool = False

    def accepts_record(self, record: Record) -> bool:
        if isinstance(record, TemplateRecord):
            return self.accepts_templates
        return record.classification in self.accepts

    def convert(self, record: Record, context: ProjectContext) -> List[ConversionArtifact]:
        raise NotImplementedError

    def rewrite(self, table: RewriteRuleTable, text: str, record_name: str,
                residual: "re.Pattern" = HOST_SERVICE_CALL) -> str:
        """Rewrite ``text`` to a fixed point and reject host calls no rule covered."""
        rewritten = table.apply(text)
        unmapped = find_unmapped_host_calls(rewritten, residual)
        if unmapped:
            raise EmissionUnmappable(construct=unmapped[0], record_name=record_name)
        return rewritten

    def artifact(self, kind: str, target_path: str, content: str, source_name: str) -> ConversionArtifact:
        return ConversionArtifact(
            kind=kind,
            target_path=target_path,
            content=content,
            declared_dependencies=detect_dependencies(content),
            target=self.target,
            source_name=source_name,
        )


# Runtime helpers the rewrite tables call, and the config module providing them
RUNTIME_MARKERS: List[Tuple[str, "re.Pattern"]] = [
    ("cache", re.compile(r"\bcache\.")),
    ("config", re.compile(r"\bconfig\.(?:get|set|getUser|setUser)\(")),
    ("currentUserEmail", re.compile(r"\bcurrentUserEmail\(")),
    ("mailer", re.compile(r"\bmailer\.")),
]


def render_runtime_requires(content: str, config_dir: str) -> List[str]:
    """``require`` lines for the runtime helpers ``content`` uses."""
    lines = []
    if re.search(r"\baxios\b", content):
        lines.append("const axios = require('axios');")
    if "crypto.randomUUID" in content:
        lines.append("const crypto = require('crypto');")
    if re.search(r"\bdb\.", content):
        lines.append(f"const {{ db }} = require('{config_dir}/database');")
    helpers = [name for name, pattern in RUNTIME_MARKERS if pattern.search(content)]
    if helpers:
        lines.append(f"const {{ {', '.join(helpers)} }} = require('{config_dir}/runtime');")
    return lines
