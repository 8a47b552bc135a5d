from __future__ import annotations

import base64
import binascii
import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from subpar.errors import EnvelopeValidationError
from subpar.utils.logger_util import get_logger

logger = get_logger(__name__)

INVALID_DATA_MESSAGE = "Invalid input received, must be an object or a base64 encoded object"
_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


def decode_data(value: Any) -> Dict[str, Any]:
    """Coerce a message `data` field into a mapping.

    Mappings pass through untouched. Strings must be base64 encoded JSON text
    whose top level is an object. Everything else (numbers, lists, null, JSON
    scalars after decoding) is rejected rather than coerced.
    """
    if isinstance(value, dict):
        return value
    if not isinstance(value, str):
        raise EnvelopeValidationError(INVALID_DATA_MESSAGE)

    text = "".join(value.split())
    # push sources occasionally strip the trailing padding
    text += "=" * (-len(text) % 4)
    # accept the URL-safe alphabet as well as the standard one
    text = text.translate(_URLSAFE_TO_STANDARD)
    try:
        decoded = json.loads(base64.b64decode(text, validate=True))
    except (binascii.Error, ValueError) as exc:
        # ValueError covers UnicodeDecodeError and json.JSONDecodeError
        logger.debug("rejecting message data: %s", exc)
        raise EnvelopeValidationError(INVALID_DATA_MESSAGE) from exc

    if not isinstance(decoded, dict):
        logger.debug("rejecting message data: decoded to %s, not an object", type(decoded).__name__)
        raise EnvelopeValidationError(INVALID_DATA_MESSAGE)
    return decoded


class PushMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message_id: str = Field(..., validation_alias=AliasChoices("messageId", "message_id"))
    # both casings are seen in the wild
    publish_time: Optional[datetime] = Field(None, validation_alias=AliasChoices("publishTime", "publish_time"))
    data: Dict[str, Any] = Field(default_factory=dict)
    attributes: Dict[str, str] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _decode_data(cls, v: Any) -> Dict[str, Any]:
        return decode_data(v)


class PushEnvelope(BaseModel):
    """One push-delivered message as handed to a handler.

    The top-level accessors (`id`, `data`, `attributes`, `publish_time`)
    mirror the fields under `message` so handlers don't have to reach into it.
    """

    model_config = ConfigDict(extra="ignore")

    subscription: str = Field(..., min_length=1)
    message: PushMessage

    @property
    def id(self) -> Optional[str]:
        return self.message.message_id

    @property
    def data(self) -> Optional[Dict[str, Any]]:
        return self.message.data

    @property
    def attributes(self) -> Dict[str, str]:
        return self.message.attributes

    @property
    def publish_time(self) -> Optional[datetime]:
        return self.message.publish_time


def _reason(exc: ValidationError) -> str:
    if any(err.get("type") == "missing" for err in exc.errors()):
        return "missing"
    return "invalid"


def decode_envelope(raw: Any) -> PushEnvelope:
    """Validate a raw push body into a PushEnvelope.

    Raises EnvelopeValidationError for anything that does not fit the
    contract; pydantic's ValidationError never escapes this function.
    """
    if isinstance(raw, PushEnvelope):
        return raw
    if not isinstance(raw, dict):
        raise EnvelopeValidationError(f"envelope must be a JSON object, got {type(raw).__name__}")
    try:
        return PushEnvelope.model_validate(raw)
    except ValidationError as exc:
        raise EnvelopeValidationError(
            f"envelope validation failed: {exc}",
            reason=_reason(exc),
            details=exc.errors(include_url=False, include_context=False),
        ) from exc


def partial_envelope(raw: Any) -> PushEnvelope:
    """Best-effort envelope for a body that failed validation.

    Fields are copied only when they already have the expected type. `data`
    is None when it was present but could not be decoded.
    """
    body = raw if isinstance(raw, dict) else {}
    message = body.get("message") if isinstance(body.get("message"), dict) else {}

    message_id = message.get("messageId", message.get("message_id"))
    attributes = message.get("attributes")
    data: Optional[Dict[str, Any]] = {}
    if "data" in message:
        try:
            data = decode_data(message["data"])
        except EnvelopeValidationError:
            data = None

    subscription = body.get("subscription")
    return PushEnvelope.model_construct(
        subscription=subscription if isinstance(subscription, str) else None,
        message=PushMessage.model_construct(
            message_id=message_id if isinstance(message_id, str) else None,
            publish_time=None,
            data=data,
            attributes=dict(attributes) if isinstance(attributes, dict) else {},
        ),
    )
