"""High-level API combining parsing and building."""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping

from .build import Builder, NoTargetsError
from .parser import parse_makefile
from .rules import Rule, RuleSet


DEFAULT_MAKEFILE = "Makefile"


class Make:
    """A parsed makefile paired with the builder that runs it.

    Example::

        make = Make.from_file("Makefile")
        make.build("all")
    """

    def __init__(self, rules: RuleSet, *, builder: Builder | None = None, **builder_options: Any) -> None:
        if builder is not None and builder_options:
            raise TypeError("builder options cannot be combined with an explicit builder")
        self._rules = rules
        self._builder = builder or Builder(rules, **builder_options)

    @classmethod
    def from_file(
        cls,
        path: Path | str | None = None,
        *,
        variables: Mapping[str, str] | None = None,
        **builder_options: Any,
    ) -> "Make":
        return cls(parse_makefile(path or DEFAULT_MAKEFILE, variables=variables), **builder_options)

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def builder(self) -> Builder:
        return self._builder

    def build(self, target: str = "") -> None:
        """Build *target*, or the default target when it is empty."""
        if not target:
            target = self._rules.default_target
        if not target:
            raise NoTargetsError()
        self._builder.build(target)

    def build_default(self) -> None:
        self.build("")

    def build_multiple(self, *targets: str) -> None:
        for target in targets:
            self.build(target)

    def build_if_exists(self, target: str) -> bool:
        """Build *target* only when the makefile has a rule for it."""
        if not self.has_target(target):
            return False
        self.build(target)
        return True

    def has_target(self, target: str) -> bool:
        return self._rules.has_target(target)

    def targets(self) -> List[str]:
        return self._rules.targets()

    def default_target(self) -> str:
        return self._rules.default_target

    def get_rule(self, target: str) -> Rule | None:
        return self._rules.get_rule(target)

    def is_built(self, target: str) -> bool:
        return self._builder.is_built(target)

    def reset(self) -> None:
        self._builder.reset()


def build(makefile_path: Path | str | None = None, target: str = "", **options: Any) -> None:
    Make.from_file(makefile_path, **options).build(target)


def build_default(makefile_path: Path | str | None = None, **options: Any) -> None:
    build(makefile_path, "", **options)


def list_targets(makefile_path: Path | str | None = None) -> List[str]:
    return Make.from_file(makefile_path).targets()


def has_target(makefile_path: Path | str | None, target: str) -> bool:
    return Make.from_file(makefile_path).has_target(target)


__all__ = [
    "DEFAULT_MAKEFILE",
    "Make",
    "build",
    "build_default",
    "has_target",
    "list_targets",
]
