"""Dependency resolution and recipe execution."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence, Set
import logging
import os

from .command_runner import CommandError, CommandRunner, SubprocessCommandRunner
from .rules import Rule, RuleSet
from .variables import AutomaticVariables


logger = logging.getLogger(__name__)


class BuildError(RuntimeError):
    """Base class for failures raised while building a target."""

    def __init__(self, message: str, *, target: str | None = None) -> None:
        super().__init__(message)
        self.target = target


class CycleDetectedError(BuildError):
    def __init__(self, target: str) -> None:
        super().__init__(f"circular dependency detected involving target '{target}'", target=target)


class NoRuleForTargetError(BuildError):
    def __init__(self, target: str) -> None:
        super().__init__(f"no rule to make target '{target}'", target=target)


class CommandFailedError(BuildError):
    """A recipe command exited non-zero or could not be started."""

    def __init__(self, command: str, cause: BaseException, *, target: str | None = None) -> None:
        if isinstance(cause, CommandError):
            message = f"command failed with exit code {cause.result.returncode}: {command}"
        else:
            message = f"command failed: {command}: {cause}"
        super().__init__(message, target=target)
        self.command = command
        self.cause = cause


class NoTargetsError(BuildError):
    def __init__(self) -> None:
        super().__init__("no targets found in makefile")


@dataclass(slots=True)
class BuildState:
    built: Set[str] = field(default_factory=set)
    in_progress: Set[str] = field(default_factory=set)

    def reset(self) -> None:
        self.built.clear()
        self.in_progress.clear()


@dataclass(slots=True)
class RecipeLine:
    """An expanded command with its ``@`` and ``-`` prefixes split off."""

    command: str
    silent: bool = False
    ignore_errors: bool = False

    @classmethod
    def parse(cls, text: str) -> "RecipeLine":
        silent = False
        ignore_errors = False
        command = text.lstrip()
        while command[:1] in {"@", "-"}:
            if command[0] == "@":
                silent = True
            else:
                ignore_errors = True
            command = command[1:].lstrip()
        return cls(command=command, silent=silent, ignore_errors=ignore_errors)


class Builder:
    """Builds targets of a :class:`RuleSet`, each at most once per session.

    A target is rebuilt when its file is missing, when it is declared phony,
    or when any prerequisite file has a later modification time. Prerequisites
    without a file are left out of the comparison; they were brought up to
    date by the recursive build before the comparison runs.
    """

    def __init__(
        self,
        rules: RuleSet,
        *,
        command_runner: CommandRunner | None = None,
        workspace: Path | None = None,
        ignore_errors: bool = False,
    ) -> None:
        self._rules = rules
        self._command_runner = command_runner or SubprocessCommandRunner()
        self._workspace = workspace
        self._ignore_errors = ignore_errors
        self._state = BuildState()

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def state(self) -> BuildState:
        return self._state

    def build(self, target: str) -> None:
        state = self._state
        if target in state.built:
            logger.debug("Target '%s' is already up to date in this session", target)
            return
        if target in state.in_progress:
            raise CycleDetectedError(target)

        rule = self._rules.get_rule(target)
        if rule is None:
            if self._exists(target):
                logger.debug("No rule for '%s'; using existing file", target)
                return
            raise NoRuleForTargetError(target)

        state.in_progress.add(target)
        try:
            for dependency in rule.dependencies:
                self.build(dependency)

            if self.needs_rebuild(target, rule.dependencies):
                self._run_recipe(rule)
            else:
                logger.debug("Target '%s' is up to date", target)
        finally:
            state.in_progress.discard(target)
        state.built.add(target)

    def is_built(self, target: str) -> bool:
        return target in self._state.built

    def reset(self) -> None:
        self._state.reset()

    def needs_rebuild(self, target: str, dependencies: Sequence[str]) -> bool:
        if self._rules.is_phony(target):
            return True
        target_mtime = self._mtime(target)
        if target_mtime is None:
            return True
        for dependency in dependencies:
            if self._rules.is_phony(dependency):
                continue
            dependency_mtime = self._mtime(dependency)
            if dependency_mtime is not None and dependency_mtime > target_mtime:
                return True
        return False

    def newer_prerequisites(self, target: str, dependencies: Sequence[str]) -> List[str]:
        target_mtime = self._mtime(target)
        if target_mtime is None:
            return list(dependencies)
        newer: List[str] = []
        for dependency in dependencies:
            if self._rules.is_phony(dependency):
                continue
            dependency_mtime = self._mtime(dependency)
            if dependency_mtime is not None and dependency_mtime > target_mtime:
                newer.append(dependency)
        return newer

    def automatic_variables(self, rule: Rule) -> AutomaticVariables:
        return AutomaticVariables.for_rule(
            rule.target,
            rule.dependencies,
            self.newer_prerequisites(rule.target, rule.dependencies),
        )

    def _run_recipe(self, rule: Rule) -> None:
        logger.info("Building target: %s", rule.target)
        auto_vars = self.automatic_variables(rule)
        for raw in rule.commands:
            line = RecipeLine.parse(self._rules.expand_with_context(raw, auto_vars))
            if not line.command:
                continue
            if not line.silent:
                logger.info("\t%s", line.command)
            try:
                self._command_runner.run(line.command, cwd=self._workspace, note=rule.target)
            except (CommandError, OSError) as exc:
                if line.ignore_errors or self._ignore_errors:
                    logger.warning("[%s] Error ignored: %s", rule.target, exc)
                    continue
                raise CommandFailedError(line.command, exc, target=rule.target) from exc

    def _path(self, name: str) -> Path:
        path = Path(name)
        if self._workspace is not None and not path.is_absolute():
            return self._workspace / path
        return path

    def _exists(self, name: str) -> bool:
        return self._mtime(name) is not None

    def _mtime(self, name: str) -> int | None:
        try:
            return os.stat(self._path(name)).st_mtime_ns
        except OSError:
            return None
