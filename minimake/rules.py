"""In-memory model of makefile rules."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Set

from .variables import AutomaticVariables, VariableStore


@dataclass(slots=True)
class Rule:
    """A target together with its prerequisites and recipe commands."""

    target: str
    dependencies: List[str] = field(default_factory=list)
    commands: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.target or not self.target.strip():
            raise ValueError("Rule target cannot be empty")

    def add_command(self, command: str) -> None:
        self.commands.append(command)


def is_special_target(name: str) -> bool:
    """Return True for names such as ``.PHONY`` that never become the default goal."""
    return name.startswith(".") and "/" not in name


@dataclass(slots=True)
class RuleSet:
    rules: Dict[str, Rule] = field(default_factory=dict)
    default_target: str = ""
    variables: VariableStore = field(default_factory=VariableStore)
    phony: Set[str] = field(default_factory=set)

    @classmethod
    def from_rules(cls, rules: Iterable[Rule], *, variables: VariableStore | None = None) -> "RuleSet":
        rule_set = cls(variables=variables if variables is not None else VariableStore())
        for rule in rules:
            rule_set.add_rule(rule)
        return rule_set

    def add_rule(self, rule: Rule) -> Rule | None:
        """Register *rule*, returning the rule it replaced if any."""
        previous = self.rules.get(rule.target)
        self.rules[rule.target] = rule
        if not self.default_target and not is_special_target(rule.target):
            self.default_target = rule.target
        return previous

    def has_target(self, target: str) -> bool:
        return target in self.rules

    def get_rule(self, target: str) -> Rule | None:
        return self.rules.get(target)

    def targets(self) -> List[str]:
        return sorted(self.rules)

    def mark_phony(self, *targets: str) -> None:
        self.phony.update(name for name in targets if name)

    def is_phony(self, target: str) -> bool:
        return target in self.phony

    def set_variable(self, name: str, value: str) -> None:
        self.variables.set_variable(name, value)

    def get_variable(self, name: str) -> str:
        return self.variables.get_variable(name)

    def has_variable(self, name: str) -> bool:
        return self.variables.has_variable(name)

    def expand(self, text: str) -> str:
        return self.variables.expand(text)

    def expand_with_context(self, text: str, auto_vars: AutomaticVariables | None) -> str:
        return self.variables.expand_with_context(text, auto_vars)
