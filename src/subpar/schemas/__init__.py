"""Schemas package for the push-delivered envelope contract.

These models are intentionally strict about the fields the dispatcher relies
on (subscription, message id, data, attributes) and tolerant of anything else
the push source adds to the body.
"""

from .envelope import PushEnvelope, PushMessage, decode_data, decode_envelope, partial_envelope

__all__ = ["PushEnvelope", "PushMessage", "decode_data", "decode_envelope", "partial_envelope"]
