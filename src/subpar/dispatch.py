from __future__ import annotations

import asyncio
import inspect
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict

from subpar.conditions import DispatchTable
from subpar.errors import EnvelopeValidationError
from subpar.schemas.envelope import PushEnvelope, decode_envelope, partial_envelope
from subpar.utils.logger_util import get_logger

logger = get_logger(__name__)


class DispatchOutcome(str, Enum):
    HANDLED = "handled"
    NO_CONTENT = "no_content"
    INVALID = "invalid"


class DispatchResult(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    outcome: DispatchOutcome
    handler_index: Optional[int] = None
    catch_all: bool = False
    value: Any = None
    # validation diagnostic, for logging only
    error: Optional[str] = None

    @property
    def handled(self) -> bool:
        return self.outcome == DispatchOutcome.HANDLED


class HandlerContext:
    """Per-call context passed to handlers as their second argument.

    Bound values and decorations are exposed as attributes; `request` is the
    transport request when there is one and `validation_error` is set only
    when a catch-all receives a message that failed validation.
    """

    def __init__(
        self,
        bindings: Optional[Dict[str, Any]] = None,
        decorations: Optional[Dict[str, Any]] = None,
        request: Any = None,
    ):
        self.bindings = dict(bindings or {})
        self.decorations = dict(decorations or {})
        self.request = request
        self.validation_error: Optional[EnvelopeValidationError] = None

    def __getattr__(self, name: str) -> Any:
        # only reached for names not set in __init__
        for source in (self.__dict__.get("decorations", {}), self.__dict__.get("bindings", {})):
            if name in source:
                return source[name]
        raise AttributeError(name)


async def invoke(handler: Callable[..., Any], envelope: PushEnvelope, context: HandlerContext) -> Any:
    """Run a handler to completion.

    Coroutine functions are awaited directly; plain functions run in a worker
    thread so a blocking handler doesn't stall other in-flight messages.
    """
    if inspect.iscoroutinefunction(handler):
        return await handler(envelope, context)
    result = await asyncio.to_thread(handler, envelope, context)
    if inspect.isawaitable(result):
        result = await result
    return result


class Dispatcher:
    """Picks and runs the handler for one envelope at a time.

    Reads the frozen DispatchTable only, so any number of dispatch() calls may
    be in flight at once. Envelope problems never raise out of dispatch();
    exceptions raised by a handler do.
    """

    def __init__(self, table: DispatchTable):
        self.table = table

    async def dispatch(self, raw: Any, context: Optional[HandlerContext] = None) -> DispatchResult:
        context = context or HandlerContext()
        try:
            envelope = decode_envelope(raw)
        except EnvelopeValidationError as exc:
            return await self._on_invalid(raw, exc, context)

        index = self.table.resolve(envelope)
        if index is not None:
            logger.debug("message %s on %s matched handler %s", envelope.id, envelope.subscription, index)
            value = await invoke(self.table.handler_for(index), envelope, context)
            return DispatchResult(outcome=DispatchOutcome.HANDLED, handler_index=index, value=value)

        if self.table.catch_all is not None:
            logger.debug("message %s on %s matched no condition, using catch-all", envelope.id, envelope.subscription)
            value = await invoke(self.table.catch_all, envelope, context)
            return DispatchResult(outcome=DispatchOutcome.HANDLED, catch_all=True, value=value)

        logger.debug("message %s on %s matched no handler", envelope.id, envelope.subscription)
        return DispatchResult(outcome=DispatchOutcome.NO_CONTENT)

    async def _on_invalid(self, raw: Any, exc: EnvelopeValidationError, context: HandlerContext) -> DispatchResult:
        if self.table.catch_all is not None:
            context.validation_error = exc
            value = await invoke(self.table.catch_all, partial_envelope(raw), context)
            return DispatchResult(outcome=DispatchOutcome.HANDLED, catch_all=True, value=value, error=str(exc))

        logger.error("dropping invalid envelope (%s): %s", exc.reason, exc)
        return DispatchResult(outcome=DispatchOutcome.INVALID, error=str(exc))
