import json

import pytest


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason="OK", text=None):
        self.status_code = status_code
        self.reason = reason
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Records every POST and answers with a canned response or exception."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse(payload={"candidates": []})
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def gemini_reply():
    return {
        "candidates": [
            {"content": {"parts": [{"text": "Hello there!"}], "role": "model"}}
        ]
    }
