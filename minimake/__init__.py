"""Minimal declarative build orchestrator driven by makefile rules."""
from __future__ import annotations

from .build import (
    BuildError,
    Builder,
    CommandFailedError,
    CycleDetectedError,
    NoRuleForTargetError,
    NoTargetsError,
)
from .make import Make
from .parser import MakefileParseError, parse_makefile, parse_makefile_text
from .rules import Rule, RuleSet
from .variables import AutomaticVariables, VariableStore

__all__ = [
    "AutomaticVariables",
    "BuildError",
    "Builder",
    "CommandFailedError",
    "CycleDetectedError",
    "Make",
    "MakefileParseError",
    "NoRuleForTargetError",
    "NoTargetsError",
    "Rule",
    "RuleSet",
    "VariableStore",
    "parse_makefile",
    "parse_makefile_text",
]
