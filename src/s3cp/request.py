# src/s3cp/request.py
"""
Copy request model and the translation of a request into S3 call parameters.

A request carries a bag of boto-style `CopyObject` attributes (ACL, content
headers, metadata, encryption settings, ...). Each remote call only accepts a
subset of them, so the builders below pick the ones that apply.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from s3cp.exceptions import LocatorError

# Attributes describing the destination object; accepted by multipart create.
OBJECT_ATTRIBUTES: FrozenSet[str] = frozenset(
    {
        "ACL",
        "CacheControl",
        "ChecksumAlgorithm",
        "ContentDisposition",
        "ContentEncoding",
        "ContentLanguage",
        "ContentType",
        "Expires",
        "GrantFullControl",
        "GrantRead",
        "GrantReadACP",
        "GrantWriteACP",
        "Metadata",
        "ObjectLockLegalHoldStatus",
        "ObjectLockMode",
        "ObjectLockRetainUntilDate",
        "RequestPayer",
        "SSECustomerAlgorithm",
        "SSECustomerKey",
        "SSECustomerKeyMD5",
        "SSEKMSEncryptionContext",
        "SSEKMSKeyId",
        "BucketKeyEnabled",
        "ServerSideEncryption",
        "StorageClass",
        "Tagging",
        "WebsiteRedirectLocation",
    }
)

# Attributes accepted by upload_part_copy.
PART_ATTRIBUTES: FrozenSet[str] = frozenset(
    {
        "CopySourceIfMatch",
        "CopySourceIfModifiedSince",
        "CopySourceIfNoneMatch",
        "CopySourceIfUnmodifiedSince",
        "CopySourceSSECustomerAlgorithm",
        "CopySourceSSECustomerKey",
        "CopySourceSSECustomerKeyMD5",
        "RequestPayer",
        "SSECustomerAlgorithm",
        "SSECustomerKey",
        "SSECustomerKeyMD5",
    }
)


def parse_locator(locator: Optional[str]) -> Tuple[str, str]:
    """
    Splits a `bucket/key` locator on its first slash.

    Args:
        locator (str, optional): The locator to split.

    Returns:
        Tuple[str, str]: The bucket and the key.

    Raises:
        LocatorError: If the locator is None, has no slash, or has an empty
            bucket or key.
    """
    if locator is None:
        raise LocatorError("got None as a bucket/key locator")
    bucket, sep, key = locator.partition("/")
    if not sep or not bucket or not key:
        raise LocatorError(f"invalid bucket/key locator: '{locator}'")
    return bucket, key


@dataclass(frozen=True)
class CopyRequest:
    """
    A request to copy one object.

    Attributes:
        copy_source (str, optional): The source object as `bucket/key`.
        bucket (str): The destination bucket.
        key (str): The destination key.
        size (int): The declared size of the source object. When not
            positive, it is looked up on the source object.
        source_region (str, optional): The region of the source bucket, if it
            differs from the destination's.
        delete (bool): Delete the source object after a successful copy.
        attributes (Mapping[str, Any]): Boto `CopyObject` keyword arguments
            forwarded to the remote calls that accept them.
    """

    copy_source: Optional[str]
    bucket: str
    key: str
    size: int = -1
    source_region: Optional[str] = None
    delete: bool = False
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def destination(self) -> str:
        """The destination as a `bucket/key` locator."""
        return f"{self.bucket}/{self.key}"

    def copy_object_params(self) -> Dict[str, Any]:
        """Parameters for a whole-object `copy_object` call."""
        return {
            **{k: v for k, v in self.attributes.items() if v is not None},
            "Bucket": self.bucket,
            "Key": self.key,
            "CopySource": self.copy_source,
        }

    def create_multipart_params(self) -> Dict[str, Any]:
        """Parameters for `create_multipart_upload`."""
        params: Dict[str, Any] = _pick(self.attributes, OBJECT_ATTRIBUTES)
        params.update(Bucket=self.bucket, Key=self.key)
        return params

    def upload_part_copy_params(
        self, part_number: int, byte_range: str, upload_id: str
    ) -> Dict[str, Any]:
        """
        Parameters for one `upload_part_copy` call.

        Args:
            part_number (int): The 1-based part number.
            byte_range (str): The inclusive source range, `bytes=first-last`.
            upload_id (str): The multipart upload identifier.
        """
        params: Dict[str, Any] = _pick(self.attributes, PART_ATTRIBUTES)
        params.update(
            Bucket=self.bucket,
            Key=self.key,
            CopySource=self.copy_source,
            CopySourceRange=byte_range,
            PartNumber=part_number,
            UploadId=upload_id,
        )
        return params

    def upload_params(self, upload_id: str) -> Dict[str, Any]:
        """Parameters identifying the multipart upload, for complete and abort."""
        params: Dict[str, Any] = _pick(self.attributes, frozenset({"RequestPayer"}))
        params.update(Bucket=self.bucket, Key=self.key, UploadId=upload_id)
        return params


def _pick(attributes: Mapping[str, Any], names: FrozenSet[str]) -> Dict[str, Any]:
    return {k: v for k, v in attributes.items() if k in names and v is not None}
