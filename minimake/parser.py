"""Line-oriented makefile parser producing a :class:`RuleSet`."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Mapping, Tuple
import logging
import re

from .rules import Rule, RuleSet
from .variables import VariableStore


logger = logging.getLogger(__name__)

_ASSIGNMENT_PATTERN = re.compile(r"^(?P<name>[^:=\s#+?]+)\s*(?P<op>:=|\?=|\+=|=)(?P<value>.*)$")

PHONY_TARGET = ".PHONY"


class MakefileParseError(ValueError):
    """Raised for lines that cannot be interpreted."""

    def __init__(self, message: str, *, line_number: int | None = None, source: str | None = None) -> None:
        location = ""
        if source and line_number is not None:
            location = f"{source}:{line_number}: "
        elif line_number is not None:
            location = f"line {line_number}: "
        elif source:
            location = f"{source}: "
        super().__init__(f"{location}{message}")
        self.line_number = line_number
        self.source = source


def parse_variable_assignment(line: str) -> Tuple[str, str, str] | None:
    """Split ``NAME op value`` into its parts, or return None for other lines.

    Supported operators are ``=``, ``:=``, ``?=`` and ``+=``.
    """

    match = _ASSIGNMENT_PATTERN.match(line.strip())
    if match is None:
        return None
    return match.group("name"), match.group("op"), match.group("value").strip()


def is_variable_assignment(line: str) -> bool:
    return parse_variable_assignment(line) is not None


def parse_lines(
    lines: Iterable[str],
    *,
    variables: Mapping[str, str] | None = None,
    defaults: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    source: str | None = None,
) -> RuleSet:
    """Build a :class:`RuleSet` from makefile *lines*.

    *variables* are overrides (for instance ``NAME=value`` given on the command
    line); assignments to those names inside the makefile are ignored.
    *defaults* seed the store before the first line and may be reassigned.
    """

    overrides = dict(variables or {})
    rule_set = RuleSet(variables=VariableStore({**(defaults or {}), **overrides}, environ=environ))
    current: List[Rule] = []

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if line.startswith("\t"):
            if not current:
                raise MakefileParseError("recipe commences before first target", line_number=line_number, source=source)
            command = line[1:]
            for rule in current:
                rule.add_command(command)
            continue

        assignment = parse_variable_assignment(line)
        if assignment is not None:
            current = []
            name, op, value = assignment
            if name in overrides:
                logger.debug("Ignoring assignment to overridden variable '%s'", name)
                continue
            _assign(rule_set, name, op, value)
            continue

        if ":" in line:
            current = _parse_rule_header(rule_set, line, line_number=line_number, source=source)
            continue

        raise MakefileParseError(f"missing separator in '{stripped}'", line_number=line_number, source=source)

    return rule_set


def parse_makefile_text(
    text: str,
    *,
    variables: Mapping[str, str] | None = None,
    defaults: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    source: str | None = None,
) -> RuleSet:
    return parse_lines(text.splitlines(), variables=variables, defaults=defaults, environ=environ, source=source)


def parse_makefile(
    path: Path | str,
    *,
    variables: Mapping[str, str] | None = None,
    defaults: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> RuleSet:
    makefile = Path(path)
    with makefile.open("r", encoding="utf-8") as handle:
        try:
            return parse_lines(handle, variables=variables, defaults=defaults, environ=environ, source=str(makefile))
        except UnicodeDecodeError as exc:
            raise MakefileParseError(f"cannot decode makefile as UTF-8: {exc.reason}", source=str(makefile)) from exc


def _assign(rule_set: RuleSet, name: str, op: str, value: str) -> None:
    if op == "?=":
        if not rule_set.has_variable(name) and name not in rule_set.variables.environ:
            rule_set.set_variable(name, rule_set.expand(value))
        return
    if op == "+=":
        expanded = rule_set.expand(value)
        existing = rule_set.variables.resolve(name)
        expanded = f"{existing} {expanded}" if existing and expanded else existing or expanded
        rule_set.set_variable(name, expanded)
        return
    rule_set.set_variable(name, rule_set.expand(value))


def _parse_rule_header(rule_set: RuleSet, line: str, *, line_number: int, source: str | None) -> List[Rule]:
    head, _, tail = line.partition(":")
    targets = rule_set.expand(head).split()
    if not targets:
        raise MakefileParseError("missing target name before ':'", line_number=line_number, source=source)
    dependencies = rule_set.expand(tail).split()

    if targets == [PHONY_TARGET]:
        rule_set.mark_phony(*dependencies)
        return []

    rules: List[Rule] = []
    for target in targets:
        rule = Rule(target=target, dependencies=list(dependencies))
        if rule_set.add_rule(rule) is not None:
            logger.warning("%s: overriding rule for target '%s'", source or f"line {line_number}", target)
        rules.append(rule)
    return rules
