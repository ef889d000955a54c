# src/s3cp/exceptions.py
"""Custom exceptions for the s3cp copy engine."""

from typing import Optional


class S3CpError(Exception):
    """Base exception for all application-specific errors."""

    pass


class ConfigError(S3CpError):
    """Raised for configuration-related issues."""

    pass


class LocatorError(S3CpError):
    """Raised when a `bucket/key` locator is absent or malformed."""

    pass


class SizeResolutionError(S3CpError):
    """Raised when the source object's size cannot be determined."""

    pass


class ObjectCopyError(S3CpError):
    """Raised when a single-shot, whole-object copy fails."""

    pass


class MultipartCreateError(S3CpError):
    """Raised when no multipart upload identifier could be obtained."""

    pass


class PartCopyError(S3CpError):
    """Raised (or recorded) when a ranged part copy fails."""

    def __init__(self, message: str, part_number: Optional[int] = None) -> None:
        super().__init__(message)
        self.part_number: Optional[int] = part_number


class FinalizeError(S3CpError):
    """Raised when completing the multipart upload fails."""

    pass


class AbortError(S3CpError):
    """Raised when aborting a multipart upload fails. Only ever logged."""

    pass


class DeleteError(S3CpError):
    """Raised when the post-copy source deletion fails. Only ever logged."""

    pass


class CopyCancelledError(S3CpError):
    """Recorded when a copy session is cancelled before it concludes."""

    pass


class CopyTimeoutError(CopyCancelledError):
    """Raised when a copy session exceeds its deadline."""

    pass
