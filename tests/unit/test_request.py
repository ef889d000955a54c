# tests/unit/test_request.py
"""
Unit tests for copy requests: locator parsing and the selection of the
pass-through attributes each remote call receives.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import pytest

from s3cp.exceptions import LocatorError
from s3cp.request import CopyRequest, parse_locator


@pytest.mark.parametrize(
    "locator, expected",
    [
        ("bucket/key", ("bucket", "key")),
        ("bucket/key/one", ("bucket", "key/one")),
        ("anotherbucket/foo/bar/", ("anotherbucket", "foo/bar/")),
    ],
)
def test_parse_locator(locator: str, expected: Tuple[str, str]) -> None:
    assert parse_locator(locator) == expected


@pytest.mark.parametrize("locator", [None, "", "bucket", "/key", "bucket/"])
def test_parse_locator_rejects_malformed(locator: Optional[str]) -> None:
    with pytest.raises(LocatorError):
        parse_locator(locator)


@pytest.fixture
def request_with_attributes() -> CopyRequest:
    """
    Provide a request carrying a representative set of copy attributes.

    Returns:
        CopyRequest: A request from `anotherbucket/foo/bar` to `bucket/foo/bar`.
    """
    attributes: Dict[str, Any] = {
        "ACL": "public-read",
        "CacheControl": "no-cache",
        "ContentDisposition": 'attachment; filename="fname.ext"',
        "ContentEncoding": "gzip",
        "ContentLanguage": "en-US",
        "ContentType": "application/pdf",
        "CopySourceIfNoneMatch": "lalkfkjdsa",
        "CopySourceIfModifiedSince": None,
        "CopySourceSSECustomerAlgorithm": "AES256",
        "Expires": datetime(2005, 7, 1, 9, 30, tzinfo=timezone.utc),
        "Metadata": {"spam": "eggs"},
        "MetadataDirective": "REPLACE",
        "SSECustomerAlgorithm": "AES256",
        "ServerSideEncryption": "AES256",
    }
    return CopyRequest(
        copy_source="anotherbucket/foo/bar",
        bucket="bucket",
        key="foo/bar",
        attributes=attributes,
    )


def test_copy_object_params_forward_everything(
    request_with_attributes: CopyRequest,
) -> None:
    params: Dict[str, Any] = request_with_attributes.copy_object_params()

    assert params["CopySource"] == "anotherbucket/foo/bar"
    assert params["Bucket"] == "bucket"
    assert params["Key"] == "foo/bar"
    assert params["MetadataDirective"] == "REPLACE"
    assert params["Metadata"] == {"spam": "eggs"}
    assert "CopySourceIfModifiedSince" not in params


def test_create_multipart_params_keep_object_attributes(
    request_with_attributes: CopyRequest,
) -> None:
    """
    Tests that the upload is created with the destination object's attributes
    but without copy-only ones.

    Args:
        request_with_attributes (CopyRequest): The request under test.
    """
    params: Dict[str, Any] = request_with_attributes.create_multipart_params()

    assert params == {
        "Bucket": "bucket",
        "Key": "foo/bar",
        "ACL": "public-read",
        "CacheControl": "no-cache",
        "ContentDisposition": 'attachment; filename="fname.ext"',
        "ContentEncoding": "gzip",
        "ContentLanguage": "en-US",
        "ContentType": "application/pdf",
        "Expires": datetime(2005, 7, 1, 9, 30, tzinfo=timezone.utc),
        "Metadata": {"spam": "eggs"},
        "SSECustomerAlgorithm": "AES256",
        "ServerSideEncryption": "AES256",
    }


def test_upload_part_copy_params(request_with_attributes: CopyRequest) -> None:
    """
    Tests that a part copy only receives the conditions and encryption
    settings that apply to a range copy.

    Args:
        request_with_attributes (CopyRequest): The request under test.
    """
    params: Dict[str, Any] = request_with_attributes.upload_part_copy_params(
        99, "bytes=1000-1999", "AN-ID"
    )

    assert params == {
        "Bucket": "bucket",
        "Key": "foo/bar",
        "CopySource": "anotherbucket/foo/bar",
        "CopySourceRange": "bytes=1000-1999",
        "PartNumber": 99,
        "UploadId": "AN-ID",
        "CopySourceIfNoneMatch": "lalkfkjdsa",
        "CopySourceSSECustomerAlgorithm": "AES256",
        "SSECustomerAlgorithm": "AES256",
    }


def test_upload_params(request_with_attributes: CopyRequest) -> None:
    assert request_with_attributes.upload_params("AN-ID") == {
        "Bucket": "bucket",
        "Key": "foo/bar",
        "UploadId": "AN-ID",
    }
    assert request_with_attributes.destination == "bucket/foo/bar"
