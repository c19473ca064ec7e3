"""
Markup analysis for HtmlService templates.
Builds a loose element tree with the stdlib HTML parser and derives the
features the UI emitters branch on.
"""
import logging
import re
import textwrap
from collections import Counter
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Dict, List, Optional, Tuple

log = logging.getLogger(__name__)

VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta",
    "param", "source", "track", "wbr",
}

# google.script.run[.withSuccessHandler(...)...].serverFunction(
HOST_RUN_CALL = re.compile(
    r"google\s*\.\s*script\s*\.\s*run"
    r"((?:\s*\.\s*with\w+\s*\((?:[^()]|\([^()]*\))*\))*)"
    r"\s*\.\s*(\w+)\s*\("
)
HOST_ANY = re.compile(r"google\s*\.\s*script\s*\.")
SCRIPTLET = re.compile(r"<\?")

SCRIPT_BLOCK = re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL)
STYLE_BLOCK = re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL)
BODY_CONTENT = re.compile(r"<body\b[^>]*>(.*?)(?:</body\s*>|\Z)", re.IGNORECASE | re.DOTALL)
DOCUMENT_SHELL = re.compile(
    r"<!DOCTYPE[^>]*>|</?html\b[^>]*>|<head\b[^>]*>.*?</head\s*>|<base\b[^>]*>",
    re.IGNORECASE | re.DOTALL,
)


@dataclass
class Element:
    tag: str
    attrs: Dict[str, Optional[str]] = field(default_factory=dict)
    children: List["Element"] = field(default_factory=list)
    text: str = ""

    def iter(self):
        yield self
        for child in self.children:
            yield from child.iter()


class _TreeBuilder(HTMLParser):
    """Tolerant tree builder: unclosed elements are closed by their parent's end tag."""

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.root = Element(tag="#document")
        self._stack: List[Element] = [self.root]

    def handle_starttag(self, tag, attrs):
        element = Element(tag=tag, attrs=dict(attrs))
        self._stack[-1].children.append(element)
        if tag not in VOID_ELEMENTS:
            self._stack.append(element)

    def handle_startendtag(self, tag, attrs):
        self._stack[-1].children.append(Element(tag=tag, attrs=dict(attrs)))

    def handle_endtag(self, tag):
        for depth in range(len(self._stack) - 1, 0, -1):
            if self._stack[depth].tag == tag:
                del self._stack[depth:]
                return
        log.debug(f"Ignoring stray end tag </{tag}>")

    def handle_data(self, data):
        self._stack[-1].text += data


def parse_markup(markup: str) -> Element:
    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return builder.root


@dataclass(frozen=True)
class MarkupFeatures:
    """What a template contains, as far as the emitters care."""
    element_count: int
    element_counts: Dict[str, int]
    form_count: int
    table_count: int
    inline_scripts: Tuple[str, ...]
    inline_styles: Tuple[str, ...]
    style_blocks: Tuple[str, ...]
    host_callbacks: Tuple[str, ...]
    uses_host_api: bool
    has_scriptlets: bool

    @property
    def has_styles(self) -> bool:
        return bool(self.inline_styles or self.style_blocks)


def analyze_markup(markup: str) -> MarkupFeatures:
    root = parse_markup(markup)
    elements = [e for e in root.iter() if e is not root]
    counts = Counter(e.tag for e in elements)

    scripts = tuple(
        e.text.strip("\n") for e in elements
        if e.tag == "script" and "src" not in e.attrs and e.text.strip()
    )
    inline_styles = tuple(e.attrs["style"] for e in elements if (e.attrs.get("style") or "").strip())
    style_blocks = tuple(e.text.strip("\n") for e in elements if e.tag == "style" and e.text.strip())

    return MarkupFeatures(
        element_count=len(elements),
        element_counts=dict(sorted(counts.items())),
        form_count=counts.get("form", 0),
        table_count=counts.get("table", 0),
        inline_scripts=scripts,
        inline_styles=inline_styles,
        style_blocks=style_blocks,
        host_callbacks=tuple(sorted({m.group(2) for m in HOST_RUN_CALL.finditer(markup)})),
        uses_host_api=bool(HOST_ANY.search(markup)),
        has_scriptlets=bool(SCRIPTLET.search(markup)),
    )


def extract_body_markup(markup: str) -> str:
    """Markup to render: the body (or the whole fragment) without scripts, styles or document shell."""
    match = BODY_CONTENT.search(markup)
    content = match.group(1) if match else markup
    content = SCRIPT_BLOCK.sub("", content)
    content = STYLE_BLOCK.sub("", content)
    content = DOCUMENT_SHELL.sub("", content)
    lines = [line.rstrip() for line in content.strip("\n").splitlines()]
    return textwrap.dedent("\n".join(line for line in lines if line.strip()))
