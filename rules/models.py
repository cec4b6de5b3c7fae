from typing import Iterator, List, Optional, Sequence

from rules import flags
from rules.actions import Action
from rules.conditions import Condition, ConditionGroup
from rules.errors import SemanticError


class Rule:
    def __init__(self, name: str, enabled: bool = False, type: int = flags.NONE):
        self._name = name
        self._enabled = enabled
        self._type = type
        self._conditions = ConditionGroup()
        self._actions: List[Action] = []
        self._frozen = False

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str):
        self._check_mutable()
        self._name = value

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool):
        self._check_mutable()
        self._enabled = value

    @property
    def type(self) -> int:
        return self._type

    @type.setter
    def type(self, value: int):
        self._check_mutable()
        self._type = value

    @property
    def conditions(self) -> ConditionGroup:
        return self._conditions

    @property
    def actions(self) -> Sequence[Action]:
        return tuple(self._actions)

    @property
    def type_names(self) -> List[str]:
        return flags.decompose(self.type)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def add_conditions(self, conditions: List[Condition]):
        self._check_mutable()
        self._conditions.extend(conditions)

    def add_action(self, action: Action):
        self._check_mutable()
        self._actions.append(action)

    def freeze(self):
        self._conditions.freeze()
        self._frozen = True

    def _check_mutable(self):
        if self._frozen:
            raise SemanticError(f"Rule '{self._name}' can't be changed once parsed")

    def __str__(self) -> str:
        lines = [
            self.name,
            f" - Enabled: {'true' if self.enabled else 'false'}",
            f" - Type: {', '.join(self.type_names)}",
        ]
        if self.conditions.is_empty():
            lines.append(" - Conditions: (none)")
        else:
            lines.append(" - Conditions:")
            lines.extend(f"  - {condition}" for condition in self.conditions)
        if not self._actions:
            lines.append(" - Actions: (none)")
        else:
            lines.append(" - Actions:")
            lines.extend(f"  - {action}" for action in self._actions)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Rule(name={self.name!r}, enabled={self.enabled!r})"


class RuleSet:
    """Rules read from one msgFilterRules.dat document, in file order."""

    def __init__(self, version: str, logging: Optional[bool] = None):
        self._version = version
        self._logging = logging
        self._rules: List[Rule] = []
        self._frozen = False

    @property
    def version(self) -> str:
        return self._version

    @property
    def logging(self) -> Optional[bool]:
        return self._logging

    @logging.setter
    def logging(self, value: bool):
        if self._logging is not None:
            raise SemanticError("Logging flag has already been set")
        self._check_mutable()
        self._logging = value

    @property
    def rules(self) -> Sequence[Rule]:
        return tuple(self._rules)

    def add_rule(self, rule: Rule):
        self._check_mutable()
        self._rules.append(rule)

    def freeze(self):
        for rule in self._rules:
            rule.freeze()
        self._frozen = True

    def _check_mutable(self):
        if self._frozen:
            raise SemanticError("Rule set can't be changed once parsed")

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def __str__(self) -> str:
        if not self._rules:
            return "(empty)"
        return "\n".join(str(rule) for rule in self._rules)
