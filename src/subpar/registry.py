from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from subpar.conditions import DispatchTable, compile_rule, flatten, validate_condition
from subpar.errors import ConfigurationError, DuplicateCatchAllError, NoHandlersError, RegistryFrozenError
from subpar.lifecycle import RegistryStates, can_transition
from subpar.utils.logger_util import get_logger

logger = get_logger(__name__)


class HandlerRegistry:
    """Ordered handler registrations plus at most one catch-all.

    Registration happens during setup, on a single thread. `freeze()` ends
    setup and hands back the DispatchTable that concurrent dispatch reads.
    """

    def __init__(self):
        self.state = RegistryStates.OPEN
        self.counter = 0
        self._table = DispatchTable()

    @property
    def catch_all(self) -> Optional[Callable[..., Any]]:
        return self._table.catch_all

    @property
    def table(self) -> DispatchTable:
        return self._table

    def register(self, handler: Callable[..., Any], condition: Optional[Mapping[str, Any]] = None) -> Optional[int]:
        """Add a handler; returns its index, or None for the catch-all."""
        if self.state == RegistryStates.FROZEN:
            raise RegistryFrozenError("handlers cannot be added once the registry is frozen")
        if not callable(handler):
            raise ConfigurationError(f"Invalid options: handler must be callable, got {type(handler).__name__}")
        condition = validate_condition(condition)

        if not any(True for _ in flatten(condition)):
            if self._table.catch_all is not None:
                raise DuplicateCatchAllError("A catch all handler has already been added")
            self._table = self._table.with_catch_all(handler)
            logger.info("registered catch-all handler %s", getattr(handler, "__name__", handler))
            return None

        index = self.counter
        rule = compile_rule(index, condition, handler)
        self._table = self._table.extend(rule)
        self.counter += 1
        logger.info(
            "registered handler %s at index %s when %s",
            getattr(handler, "__name__", handler),
            index,
            ", ".join(f"{leaf.path}={leaf.value!r}" for leaf in rule.leaves),
        )
        return index

    def freeze(self) -> DispatchTable:
        if not can_transition(self.state, RegistryStates.FROZEN):
            # already frozen: hand back the same snapshot
            return self._table
        if not len(self._table) and self._table.catch_all is None:
            raise NoHandlersError("No handlers added, unable to start")
        self.state = RegistryStates.FROZEN
        logger.debug("registry frozen with %s conditional handler(s), catch-all=%s", len(self._table), self.catch_all is not None)
        return self._table
