# tests/unit/conftest.py
"""Fixtures for the unit tests of the copy engine."""

from typing import Any, Callable, Dict

import pytest
from fakes import EventRecorder, FakeS3Api

from s3cp.request import CopyRequest


@pytest.fixture
def api() -> FakeS3Api:
    """Provide a fresh fake S3 client."""
    return FakeS3Api()


@pytest.fixture
def make_request() -> Callable[..., CopyRequest]:
    """
    Provide a factory for requests copying `bucket/key` to `dest-bucket/dest/key`.

    Returns:
        A function accepting `CopyRequest` fields to override.
    """

    def _creator(**overrides: Any) -> CopyRequest:
        fields: Dict[str, Any] = {
            "copy_source": "bucket/key",
            "bucket": "dest-bucket",
            "key": "dest/key",
        }
        fields.update(overrides)
        return CopyRequest(**fields)

    return _creator


@pytest.fixture
def events() -> EventRecorder:
    """Provide an event sink that records everything it receives."""
    return EventRecorder()
