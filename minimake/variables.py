"""Variable storage and ``$(NAME)`` / automatic variable expansion."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping
import os
import re


_VARIABLE_PATTERN = re.compile(r"\$(?:\((?P<paren>[^)]+)\)|\{(?P<brace>[^}]+)\})")
_AUTOMATIC_PATTERN = re.compile(r"\$[@<^?]")


@dataclass(slots=True)
class AutomaticVariables:
    """Per-step values for ``$@``, ``$<``, ``$^`` and ``$?``."""

    target: str
    first_prerequisite: str = ""
    all_prerequisites: List[str] = field(default_factory=list)
    newer_prerequisites: List[str] = field(default_factory=list)

    @classmethod
    def for_rule(cls, target: str, prerequisites: List[str], newer: List[str]) -> "AutomaticVariables":
        return cls(
            target=target,
            first_prerequisite=prerequisites[0] if prerequisites else "",
            all_prerequisites=list(prerequisites),
            newer_prerequisites=list(newer),
        )

    def lookup(self, token: str) -> str:
        if token == "$@":
            return self.target
        if token == "$<":
            return self.first_prerequisite
        if token == "$^":
            return " ".join(self.all_prerequisites)
        if token == "$?":
            return " ".join(self.newer_prerequisites)
        return token


class VariableStore:
    """Name to value bindings with process environment fallback.

    Lookups that miss both the local bindings and the environment produce an
    empty string rather than an error. The environment is read at lookup time,
    so changes to :data:`os.environ` are visible without rebuilding the store.
    """

    def __init__(self, values: Mapping[str, str] | None = None, *, environ: Mapping[str, str] | None = None) -> None:
        self._values: Dict[str, str] = dict(values) if values else {}
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def set_variable(self, name: str, value: str) -> None:
        self._values[name] = value

    def get_variable(self, name: str) -> str:
        return self._values.get(name, "")

    def has_variable(self, name: str) -> bool:
        return name in self._values

    def resolve(self, name: str) -> str:
        if name in self._values:
            return self._values[name]
        return self.environ.get(name, "")

    def expand(self, text: str) -> str:
        """Replace ``$(NAME)`` and ``${NAME}`` references in *text*.

        Substituted values are inserted as-is; a value that itself contains a
        reference is not expanded again.
        """

        def replacement(match: re.Match[str]) -> str:
            name = match.group("paren") or match.group("brace")
            return self.resolve(name)

        if "$" not in text:
            return text
        return _VARIABLE_PATTERN.sub(replacement, text)

    def expand_with_context(self, text: str, auto_vars: AutomaticVariables | None) -> str:
        if auto_vars is not None:
            text = _AUTOMATIC_PATTERN.sub(lambda match: auto_vars.lookup(match.group(0)), text)
        return self.expand(text)
