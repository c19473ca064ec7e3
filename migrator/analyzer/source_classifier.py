"""
Source classifier: extracts top-level functions, template references and
trigger installations from Apps Script source text.
Uses brace matching and regex patterns (no full grammar) for speed.
"""
import logging
import re
import textwrap
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple
from migrator.core.workflow import Classification
from migrator.generators.types import (
    ClassifiedUnit,
    FunctionRecord,
    SourceUnit,
    TriggerInstallation,
    template_name,
)
from migrator.generators.utils import split_words

log = logging.getLogger(__name__)

FUNCTION_SIGNATURE = re.compile(r"function\s+([A-Za-z_$][\w$]*)\s*\(")

TEMPLATE_REFERENCE = re.compile(
    r"HtmlService\s*\.\s*(?:createHtmlOutputFromFile|createTemplateFromFile)"
    r"\s*\(\s*['\"]([^'\"]+)['\"]\s*\)"
)

NEW_TRIGGER = re.compile(
    r"ScriptApp\s*\.\s*newTrigger\s*\(\s*['\"]([\w$]+)['\"]\s*\)"
    r"((?:\s*\.\s*\w+\s*\([^()]*\))*)"
)
CHAINED_CALL = re.compile(r"\.\s*(\w+)\s*\(([^()]*)\)")

# Request-verb tokens and the explicit API marker
API_TOKENS = {"get", "post", "api"}

LIFECYCLE_PREFIXES = ("on", "trigger")
KNOWN_HOOKS = {"onOpen", "onEdit", "onInstall", "onFormSubmit", "onSelectionChange", "onChange"}

# Trigger builder methods -> frequency
FREQUENCY_METHODS = {
    "everyMinutes": "MINUTES",
    "everyHours": "HOURLY",
    "everyDays": "DAILY",
    "atHour": "DAILY",
    "everyWeeks": "WEEKLY",
    "onWeekDay": "WEEKLY",
    "onMonthDay": "MONTHLY",
}
FREQUENCY_RANK = ["MINUTES", "HOURLY", "DAILY", "WEEKLY", "MONTHLY", "YEARLY"]

# Trigger builder methods -> event type
EVENT_METHODS = {
    "onEdit": "ON_EDIT",
    "onOpen": "ON_OPEN",
    "onFormSubmit": "ON_FORM_SUBMIT",
    "onChange": "ON_CHANGE",
    "timeBased": "CLOCK",
}


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def skip_non_code(text: str, i: int) -> Optional[int]:
    """If a comment or string literal starts at ``i``, return the index just past it."""
    n = len(text)
    if text.startswith("//", i):
        end = text.find("\n", i)
        return n if end == -1 else end
    if text.startswith("/*", i):
        end = text.find("*/", i + 2)
        return n if end == -1 else end + 2
    quote = text[i]
    if quote in "'\"`":
        j = i + 1
        while j < n:
            ch = text[j]
            if ch == "\\":
                j += 2
                continue
            if ch == quote:
                return j + 1
            if ch == "\n" and quote != "`":
                # Unterminated single-line string ends at the line break
                return j
            j += 1
        return n
    return None


def find_matching(text: str, start: int, open_ch: str, close_ch: str) -> Optional[int]:
    """Index of the bracket closing the one at ``start``, or None if unterminated."""
    depth = 0
    i = start
    n = len(text)
    while i < n:
        skipped = skip_non_code(text, i)
        if skipped is not None:
            i = skipped
            continue
        ch = text[i]
        if ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _parse_params(raw: str) -> Tuple[str, ...]:
    params = []
    for part in raw.split(","):
        # Drop default values: function f(a, b = 1)
        name = part.split("=", 1)[0].strip()
        if name:
            params.append(name)
    return tuple(params)


def _parse_function(text: str, match: "re.Match", filename: str) -> Optional[Tuple[FunctionRecord, int]]:
    """Parse one signature match into a record; None when it is malformed or unterminated."""
    open_paren = match.end() - 1
    close_paren = find_matching(text, open_paren, "(", ")")
    if close_paren is None:
        return None

    brace = close_paren + 1
    while brace < len(text) and text[brace].isspace():
        brace += 1
    if brace >= len(text) or text[brace] != "{":
        return None

    close_brace = find_matching(text, brace, "{", "}")
    if close_brace is None:
        return None

    name = match.group(1)
    body = textwrap.dedent(text[brace + 1:close_brace]).strip("\n")
    record = FunctionRecord(
        name=name,
        param_names=_parse_params(text[open_paren + 1:close_paren]),
        body_text=body.rstrip(),
        classification=classify(name, body),
        source_filename=filename,
    )
    return record, close_brace + 1


def _scan_functions(source_text: str, filename: str = "") -> Iterator[Tuple[FunctionRecord, int, int]]:
    """Yield (record, start, end) for every well-formed top-level declaration."""
    depth = 0
    i = 0
    n = len(source_text)

    while i < n:
        skipped = skip_non_code(source_text, i)
        if skipped is not None:
            i = skipped
            continue

        if depth == 0:
            match = FUNCTION_SIGNATURE.match(source_text, i)
            if match and (i == 0 or not _is_ident_char(source_text[i - 1])):
                parsed = _parse_function(source_text, match, filename)
                if parsed is None:
                    log.warning(f"Skipping malformed function signature '{match.group(1)}' in {filename or '<source>'}")
                    i = match.end()
                    continue
                record, end = parsed
                yield record, i, end
                i = end
                continue

        ch = source_text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth = max(0, depth - 1)
        i += 1


def extract_functions(source_text: str, filename: str = "") -> List[FunctionRecord]:
    """Extract top-level function declarations in declaration order.

    Nested functions stay part of their parent's body. Malformed or
    unterminated signatures are skipped. When a name is declared twice the
    first declaration is kept so names stay unique within the unit.
    """
    records: List[FunctionRecord] = []
    seen: Set[str] = set()
    for record, _, _ in _scan_functions(source_text, filename):
        if record.name in seen:
            log.warning(f"Duplicate function '{record.name}' in {filename or '<source>'}; keeping the first declaration")
            continue
        seen.add(record.name)
        records.append(record)
    return records


def split_declarations(source_text: str) -> Tuple[str, str]:
    """Split script text into (top-level function declarations, remaining statements)."""
    declarations: List[str] = []
    rest: List[str] = []
    last = 0
    for _, start, end in _scan_functions(source_text):
        # Take the declaration's own indentation along so dedent sees the whole block
        line_start = max(source_text.rfind("\n", 0, start) + 1, last)
        if not source_text[line_start:start].strip():
            start = line_start
        rest.append(source_text[last:start])
        declarations.append(textwrap.dedent(source_text[start:end]).strip("\n"))
        last = end
    rest.append(source_text[last:])
    statements = "\n".join(line for line in "".join(rest).splitlines() if line.strip())
    return "\n\n".join(declarations), textwrap.dedent(statements)


def _is_api_name(name: str, _body: str) -> bool:
    return any(word in API_TOKENS for word in split_words(name))


def _is_trigger_name(name: str, _body: str) -> bool:
    if name in KNOWN_HOOKS:
        return True
    words = split_words(name)
    return len(words) > 1 and words[0] in LIFECYCLE_PREFIXES


# Evaluated in order, first match wins. A name carrying both a request verb
# and a lifecycle prefix (onGetData) is classified as an endpoint.
CLASSIFICATION_RULES: List[Tuple[Classification, Callable[[str, str], bool]]] = [
    (Classification.API_ENDPOINT, _is_api_name),
    (Classification.TRIGGER, _is_trigger_name),
]


def classify(name: str, body_text: str = "") -> Classification:
    """Classify a function from its name and body. Total and deterministic."""
    for classification, rule in CLASSIFICATION_RULES:
        if rule(name, body_text):
            return classification
    log.debug(f"No specific rule matched '{name}'; classified as Utility")
    return Classification.UTILITY


def extract_template_references(source_text: str) -> Set[str]:
    """Find every HtmlService template file referenced by the source."""
    return {template_name(m.group(1)) for m in TEMPLATE_REFERENCE.finditer(source_text)}


def extract_trigger_installations(source_text: str) -> Dict[str, TriggerInstallation]:
    """Parse ScriptApp.newTrigger('fn')... chains into event type and frequency."""
    installations: Dict[str, TriggerInstallation] = {}

    for match in NEW_TRIGGER.finditer(source_text):
        function_name = match.group(1)
        event_type = None
        frequency = None
        for call in CHAINED_CALL.finditer(match.group(2)):
            method = call.group(1)
            if method in EVENT_METHODS:
                event_type = EVENT_METHODS[method]
            if method in FREQUENCY_METHODS:
                candidate = FREQUENCY_METHODS[method]
                # onWeekDay(...).atHour(9) is weekly, not daily
                if frequency is None or FREQUENCY_RANK.index(candidate) > FREQUENCY_RANK.index(frequency):
                    frequency = candidate
        if frequency and event_type is None:
            event_type = "CLOCK"

        if function_name in installations:
            continue
        installations[function_name] = TriggerInstallation(
            function_name=function_name,
            event_type=event_type,
            frequency=frequency,
        )

    return installations


def classify_source_unit(unit: SourceUnit) -> ClassifiedUnit:
    """Run every extractor over one unit. No signatures is an empty result, not an error."""
    functions = extract_functions(unit.raw_text, unit.filename)
    references = extract_template_references(unit.raw_text)
    installations = extract_trigger_installations(unit.raw_text)

    counts: Dict[Classification, int] = {c: 0 for c in Classification}
    for record in functions:
        counts[record.classification] += 1
    log.info(
        f"Classified {unit.filename}: {counts[Classification.API_ENDPOINT]} endpoints, "
        f"{counts[Classification.TRIGGER]} triggers, {counts[Classification.UTILITY]} utilities, "
        f"{len(references)} template references"
    )

    return ClassifiedUnit(
        unit=unit,
        functions=functions,
        template_references=frozenset(references),
        trigger_installations=installations,
    )
