import base64
import json
from typing import Any, Callable, Dict

import pytest
from fastapi.testclient import TestClient

from subpar import Subpar

# tests/conftest.py


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    """
    Keep server defaults stable regardless of the developer's environment or
    a local .env file.
    """
    monkeypatch.setenv("SUBPAR_ENVIRONMENT", "test")
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.delenv("SUBPAR_PATH", raising=False)
    monkeypatch.delenv("SUBPAR_PUSH_TOKEN_SECRET", raising=False)
    monkeypatch.delenv("SUBPAR_LOG_DIR", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    yield


def _encode(value: Any) -> str:
    if not isinstance(value, str):
        value = json.dumps(value)
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


@pytest.fixture
def encode_data() -> Callable[[Any], str]:
    """base64 encode a mapping as JSON (or a raw string as-is)."""
    return _encode


@pytest.fixture
def make_payload() -> Callable[..., Dict[str, Any]]:
    """
    Return a helper building a push body.
    Usage: payload = make_payload(attributes={"type": "test"}, data={"a": 1})
    """
    def _make(data: Any = None, attributes: Dict[str, str] = None, subscription: str = "test", message_id: str = "1234", **message_fields) -> Dict[str, Any]:
        message = {
            "messageId": message_id,
            "data": {} if data is None else data,
            "attributes": {} if attributes is None else attributes,
        }
        message.update(message_fields)
        return {"subscription": subscription, "message": message}
    return _make


@pytest.fixture
def server() -> Subpar:
    return Subpar("test")


@pytest.fixture
def client_for() -> Callable[[Subpar], TestClient]:
    """Initialize a server and wrap its app in a TestClient."""
    def _client(srv: Subpar, **kwargs) -> TestClient:
        return TestClient(srv.initialize(), **kwargs)
    return _client
