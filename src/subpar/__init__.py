"""subpar: conditional dispatch of push-delivered pub/sub messages."""

from subpar.conditions import DispatchTable, flatten
from subpar.dispatch import DispatchOutcome, DispatchResult, Dispatcher, HandlerContext
from subpar.errors import (
    ConfigurationError,
    DuplicateCatchAllError,
    EnvelopeValidationError,
    NoHandlersError,
    RegistryFrozenError,
)
from subpar.main import Subpar
from subpar.registry import HandlerRegistry
from subpar.schemas.envelope import PushEnvelope, decode_data, decode_envelope

__version__ = "0.1.0"

__all__ = [
    "Subpar",
    "HandlerRegistry",
    "Dispatcher",
    "DispatchTable",
    "DispatchOutcome",
    "DispatchResult",
    "HandlerContext",
    "PushEnvelope",
    "decode_data",
    "decode_envelope",
    "flatten",
    "ConfigurationError",
    "DuplicateCatchAllError",
    "NoHandlersError",
    "RegistryFrozenError",
    "EnvelopeValidationError",
]
