"""Express emitter: endpoint records become route, controller, model and middleware files."""
import logging
from typing import List, Tuple
from migrator.analyzer.source_classifier import skip_non_code
from migrator.core.errors import EmissionUnmappable
from migrator.core.workflow import Classification, TargetKind
from migrator.generators.base import BaseEmitter, ProjectContext, await_calls
from migrator.generators.endpoint_gen.render import (
    render_controller,
    render_library,
    render_middleware,
    render_model,
    render_route,
)
from migrator.generators.rewrite_rules import ENDPOINT_RULES
from migrator.generators.types import ConversionArtifact, FunctionRecord, Identifiers
from migrator.generators.utils import split_words

log = logging.getLogger(__name__)

# Leading name tokens of read-only operations
READ_PREFIXES = [("do", "get"), ("get",), ("read",), ("list",), ("fetch",), ("find",), ("load",)]

# Parameter names that hold the request event rather than a caller argument
EVENT_PARAMETERS = {"e", "event", "evt", "request"}
# Names the generated handler already declares
HANDLER_NAMES = {"req", "res", "next", "params"}

# Characters that end a line without ending the expression
CONTINUATION = set(".+-*/%?:&|,=<>([{")


def request_verb(name: str) -> str:
    """GET for read-prefixed names, POST for write-prefixed or unrecognised ones."""
    words = split_words(name)
    for prefix in READ_PREFIXES:
        if tuple(words[:len(prefix)]) == prefix:
            return "GET"
    return "POST"


def route_path(ids: Identifiers) -> str:
    return f"/api/{ids.slug}"


def endpoint_route(name: str, context: ProjectContext) -> Tuple[str, str]:
    """(verb, path) the endpoint emitter binds ``name`` to."""
    return request_verb(name), route_path(context.identifiers.function(name))


def bound_params(record: FunctionRecord) -> List[str]:
    """Caller arguments of an endpoint, read by name from the request parameters."""
    return [p for p in record.param_names if p not in EVENT_PARAMETERS]


def library_dependencies(record: FunctionRecord, context: ProjectContext) -> List[Identifiers]:
    """Identifiers of the utility functions ``record`` calls, in name order."""
    return [
        context.identifiers.function(name)
        for name in context.called_functions(record.body_text, exclude=record.name)
        if context.classification_of(name) == Classification.UTILITY
    ]


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def _statement_end(text: str, start: int) -> int:
    """Index where the expression starting at ``start`` ends: ``;``, an enclosing close or end of line."""
    depth = 0
    i = start
    n = len(text)
    while i < n:
        if depth == 0 and text.startswith("//", i):
            return i
        skipped = skip_non_code(text, i)
        if skipped is not None:
            i = skipped
            continue
        ch = text[i]
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                return i
            depth -= 1
        elif depth == 0 and ch == ";":
            return i
        elif depth == 0 and ch == "\n":
            line = text[start:i].rstrip()
            if not line:
                # A bare return ends at the line break
                return i
            following = text[i:].lstrip()
            if line[-1] not in CONTINUATION and not (following and following[0] in CONTINUATION):
                return i
        i += 1
    return n


def send_return_values(body: str) -> str:
    """Answer handler-level ``return <value>`` statements with ``res.json(<value>)``.

    Returns inside nested functions, bare ``return;`` and returns that already
    answer through ``res`` or ``next`` are left alone.
    """
    out = []
    stack: List[str] = []
    pending_function = False
    last = i = 0
    n = len(body)
    while i < n:
        skipped = skip_non_code(body, i)
        if skipped is not None:
            i = skipped
            continue
        ch = body[i]
        if _is_ident_char(ch) and (i == 0 or not _is_ident_char(body[i - 1])):
            j = i
            while j < n and _is_ident_char(body[j]):
                j += 1
            word = body[i:j]
            if word == "function":
                pending_function = True
            elif word == "return" and "function" not in stack:
                end = _statement_end(body, j)
                value = body[j:end].strip()
                if value and not value.startswith(("res.", "next(")):
                    out.append(body[last:i])
                    out.append(f"return res.json({value})")
                    last = end
                i = end
                continue
            i = j
            continue
        if body.startswith("=>", i):
            # Only a braced arrow body can hold a return statement
            pending_function = body[i + 2:].lstrip().startswith("{")
            i += 2
            continue
        if ch == "{":
            stack.append("function" if pending_function else "block")
            pending_function = False
        elif ch in "([":
            stack.append("group")
        elif ch in ")]}" and stack:
            stack.pop()
        i += 1
    out.append(body[last:])
    return "".join(out)


class EndpointEmitter(BaseEmitter):
    target = TargetKind.ENDPOINT
    accepts = frozenset({Classification.API_ENDPOINT, Classification.UTILITY})

    def convert(self, record: FunctionRecord, context: ProjectContext) -> List[ConversionArtifact]:
        ids = context.identifiers.function(record.name)
        body = self.rewrite(ENDPOINT_RULES, record.body_text, record.name)
        body = await_calls(body, context.async_functions)
        utilities = library_dependencies(record, context)

        if record.classification == Classification.UTILITY:
            return [self.artifact(
                "library",
                f"service/src/lib/{ids.slug}.js",
                render_library(ids, list(record.param_names), body, utilities),
                record.name,
            )]

        params = bound_params(record)
        clashing = sorted(HANDLER_NAMES.intersection(params))
        if clashing:
            raise EmissionUnmappable(construct=f"parameter '{clashing[0]}'", record_name=record.name)

        verb, path = endpoint_route(record.name, context)
        log.debug(f"Endpoint {record.name} -> {verb} {path}")
        return [
            self.artifact("route", f"service/src/routes/{ids.slug}.js", render_route(ids, verb, path), record.name),
            self.artifact("controller", f"service/src/controllers/{ids.camel}Controller.js",
                          render_controller(ids, send_return_values(body), utilities, params), record.name),
            self.artifact("model", f"service/src/models/{ids.camel}Model.js",
                          render_model(ids, context.persistence), record.name),
            self.artifact("middleware", f"service/src/middleware/{ids.camel}Middleware.js",
                          render_middleware(ids, verb), record.name),
        ]
