"""Handler conditions and the dispatch table they compile into.

A condition is a nested mapping rooted at `data` and/or `attributes`, e.g.
``{"attributes": {"type": "user.created"}}``. It is flattened into leaves
(key path + expected value) and every leaf must equal the corresponding value
in the envelope for the condition to match.

Rules are evaluated in registration order and the first match wins; when
nothing matches the catch-all (if any) takes the message.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, NamedTuple, Optional, Tuple

from subpar.errors import ConfigurationError
from subpar.schemas.envelope import PushEnvelope

CONDITION_ROOTS = ("data", "attributes")

_MISSING = object()


class ConditionLeaf(NamedTuple):
    keys: Tuple[str, ...]
    value: Any

    @property
    def path(self) -> str:
        return ".".join(self.keys)


def flatten(condition: Mapping[str, Any], prefix: Tuple[str, ...] = ()) -> Iterator[ConditionLeaf]:
    """Yield one leaf per non-mapping value, in insertion order.

    None is a leaf like any other scalar; empty mappings contribute nothing.
    """
    for key, value in condition.items():
        keys = prefix + (str(key),)
        if isinstance(value, Mapping):
            yield from flatten(value, keys)
        else:
            yield ConditionLeaf(keys, value)


def validate_condition(condition: Any) -> Dict[str, Any]:
    if condition is None:
        return {}
    if not isinstance(condition, Mapping):
        raise ConfigurationError(f"Invalid options: condition must be a mapping, got {type(condition).__name__}")
    unknown = [k for k in condition if k not in CONDITION_ROOTS]
    if unknown:
        raise ConfigurationError(f"Invalid options: condition keys must be one of {CONDITION_ROOTS}, got {unknown}")
    for root, value in condition.items():
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"Invalid options: condition.{root} must be a mapping")
    return dict(condition)


def _reach(source: Any, keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if not isinstance(source, Mapping) or key not in source:
            return _MISSING
        source = source[key]
    return source


def _equals(actual: Any, expected: Any) -> bool:
    # keep True from matching 1 (and False from matching 0)
    if isinstance(actual, bool) or isinstance(expected, bool):
        return type(actual) is type(expected) and actual == expected
    return actual == expected


@dataclass(frozen=True)
class Rule:
    index: int
    leaves: Tuple[ConditionLeaf, ...]
    handler: Callable[..., Any]

    def matches(self, envelope: PushEnvelope) -> bool:
        message = {"data": envelope.data, "attributes": envelope.attributes}
        for leaf in self.leaves:
            actual = _reach(message, leaf.keys)
            if actual is _MISSING or not _equals(actual, leaf.value):
                return False
        return True


@dataclass(frozen=True)
class DispatchTable:
    """Immutable snapshot of every registration, safe to share across calls."""

    rules: Tuple[Rule, ...] = ()
    catch_all: Optional[Callable[..., Any]] = None

    def __len__(self) -> int:
        return len(self.rules)

    def extend(self, rule: Rule) -> "DispatchTable":
        return DispatchTable(rules=self.rules + (rule,), catch_all=self.catch_all)

    def with_catch_all(self, handler: Callable[..., Any]) -> "DispatchTable":
        return DispatchTable(rules=self.rules, catch_all=handler)

    def resolve(self, envelope: PushEnvelope) -> Optional[int]:
        """Index of the first rule matching the envelope, None when no rule does."""
        for rule in self.rules:
            if rule.matches(envelope):
                return rule.index
        return None

    def handler_for(self, index: int) -> Callable[..., Any]:
        return self.rules[index].handler


def compile_rule(index: int, condition: Mapping[str, Any], handler: Callable[..., Any]) -> Rule:
    return Rule(index=index, leaves=tuple(flatten(condition)), handler=handler)
