"""Naming helpers and the run-wide identifier table."""
import re
from typing import Dict, Iterable, List
from migrator.generators.types import Identifiers


# Leading name tokens that name the request verb rather than the resource,
# longest first: doGetUsers -> users, getUsers -> users.
REQUEST_VERB_PREFIXES = [
    ("do", "get"),
    ("do", "post"),
    ("get",),
    ("post",),
    ("api",),
]


def split_words(name: str) -> List[str]:
    """Split camelCase, PascalCase, snake_case and kebab-case names into lowercase words."""
    s1 = re.sub('(.)([A-Z][a-z]+)', r'\1 \2', name)
    s2 = re.sub('([a-z0-9])([A-Z])', r'\1 \2', s1)
    return [w.lower() for w in re.split(r'[^A-Za-z0-9]+', s2) if w]


def to_kebab_case(name: str) -> str:
    """Convert any supported name style to kebab-case."""
    return "-".join(split_words(name))


def to_camel_case(name: str) -> str:
    """Convert any supported name style to camelCase."""
    words = split_words(name)
    if not words:
        return ""
    return words[0] + "".join(w.capitalize() for w in words[1:])


def to_pascal_case(name: str) -> str:
    """Convert any supported name style to PascalCase."""
    return "".join(w.capitalize() for w in split_words(name))


def strip_request_verb(name: str) -> List[str]:
    """Return the words of ``name`` with a leading request-verb prefix removed.

    The prefix is only removed when something is left, so ``doGet`` keeps
    its own words.
    """
    words = split_words(name)
    for prefix in REQUEST_VERB_PREFIXES:
        if len(words) > len(prefix) and tuple(words[:len(prefix)]) == prefix:
            return words[len(prefix):]
    return words


def derive_identifiers(name: str) -> Identifiers:
    """Derive slug/camel/pascal forms of a source name. Pure function of ``name``."""
    words = strip_request_verb(name) or ["unnamed"]
    stem = "-".join(words)
    return Identifiers(
        name=name,
        stem=stem,
        slug=stem,
        camel=words[0] + "".join(w.capitalize() for w in words[1:]),
        pascal="".join(w.capitalize() for w in words),
    )


class IdentifierTable:
    """Run-wide mapping of function and template names to their identifiers.

    The table is filled during the collect phase and frozen before any
    emitter runs. Looking up a name that was never registered raises
    ``KeyError``: an emitter must never invent an identifier on its own.
    """

    def __init__(self):
        self._functions: Dict[str, Identifiers] = {}
        self._templates: Dict[str, Identifiers] = {}
        self._frozen = False

    @classmethod
    def build(cls, function_names: Iterable[str], template_names: Iterable[str]) -> "IdentifierTable":
        table = cls()
        for name in function_names:
            table.register_function(name)
        for name in template_names:
            table.register_template(name)
        table.freeze()
        return table

    def _check_open(self) -> None:
        if self._frozen:
            raise RuntimeError("Identifier table is frozen; register names before emitting")

    def register_function(self, name: str) -> Identifiers:
        self._check_open()
        if name not in self._functions:
            self._functions[name] = derive_identifiers(name)
        return self._functions[name]

    def register_template(self, name: str) -> Identifiers:
        self._check_open()
        if name not in self._templates:
            self._templates[name] = derive_identifiers(name)
        return self._templates[name]

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def function(self, name: str) -> Identifiers:
        return self._functions[name]

    def template(self, name: str) -> Identifiers:
        return self._templates[name]

    def has_function(self, name: str) -> bool:
        return name in self._functions

    def function_names(self) -> List[str]:
        return sorted(self._functions)

    def template_names(self) -> List[str]:
        return sorted(self._templates)
