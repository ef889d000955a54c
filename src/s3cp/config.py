# src/s3cp/config.py
"""
Configuration for the s3cp copy engine.

This module centralizes the tunables of the copy engine and the connection
settings for the S3 service, loading the latter from environment variables
and providing typed, immutable dataclasses for use throughout the application.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from s3cp.exceptions import ConfigError

MIB: int = 1024 * 1024

# Large enough that the maximum object size (5 TiB) fits within
# MAX_UPLOAD_PARTS parts.
DEFAULT_COPY_PART_SIZE: int = 500 * MIB

DEFAULT_COPY_CONCURRENCY: int = 64

# A large copy can take hours.
DEFAULT_COPY_TIMEOUT_S: float = 18 * 60 * 60.0

MIN_COPY_PART_SIZE: int = 25 * MIB

MAX_UPLOAD_PARTS: int = 10_000


def _get_env_var(name: str, default: Optional[str] = None) -> str:
    """
    Retrieves a required environment variable.

    Args:
        name (str): The name of the environment variable.
        default (str, optional): The default value if the variable is not set.

    Returns:
        str: The value of the environment variable.
    """
    value: Optional[str] = os.environ.get(name, default)
    if not value:
        raise ConfigError(f"Environment variable '{name}' must be set.")
    return value


@dataclass(frozen=True)
class S3Config:
    """
    Represents the connection settings for an S3-compatible endpoint.

    Attributes:
        region (str): The AWS region the client is bound to.
        endpoint_url (str, optional): A custom S3 endpoint URL.
        access_key_id (str, optional): The access key ID. When unset, the
            botocore credential chain is used.
        secret_access_key (str, optional): The secret access key.
        max_attempts (int): Retry attempts handled by the botocore client.
    """

    region: str
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    max_attempts: int = 5

    @classmethod
    def from_env(cls, region: Optional[str] = None) -> "S3Config":
        """
        Builds the configuration from environment variables.

        Args:
            region (str, optional): An explicit region. Falls back to
                `AWS_DEFAULT_REGION` when not given.

        Returns:
            S3Config: The connection settings.
        """
        return cls(
            region=region or _get_env_var("AWS_DEFAULT_REGION"),
            endpoint_url=os.environ.get("S3CP_ENDPOINT_URL") or None,
            access_key_id=os.environ.get("AWS_ACCESS_KEY_ID") or None,
            secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY") or None,
            max_attempts=int(os.environ.get("S3CP_MAX_ATTEMPTS", "5")),
        )

    def for_region(self, region: str) -> "S3Config":
        """Returns a copy of these settings bound to another region."""
        return dataclasses.replace(self, region=region)

    def with_endpoint(self, endpoint_url: str) -> "S3Config":
        """Returns a copy of these settings pointing at another endpoint."""
        return dataclasses.replace(self, endpoint_url=endpoint_url)

    def as_boto_dict(self) -> Dict[str, str]:
        """
        Returns the configuration as a dictionary suitable for aiobotocore clients.

        Returns:
            Dict[str, str]: A dictionary of client parameters, omitting unset ones.
        """
        params: Dict[str, Optional[str]] = {
            "region_name": self.region,
            "endpoint_url": self.endpoint_url,
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
        }
        return {k: v for k, v in params.items() if v is not None}


@dataclass(frozen=True)
class CopierConfig:
    """
    Tunables shared by every copy performed through one `Copier`.

    No validation happens here. Values the service rejects (e.g. a part size
    below its minimum) surface as remote-call failures.

    Attributes:
        part_size (int): Size in bytes of each copied part. Objects smaller
            than this are copied in a single request.
        concurrency (int): Number of parts copied at once.
        timeout_s (float): Deadline in seconds for a whole copy session.
        leave_parts_on_error (bool): When True, a failed multipart copy is not
            aborted, leaving the copied parts on the service for manual
            recovery. Stored parts of an incomplete upload count towards
            storage usage until cleaned up.
        request_options (Mapping[str, Any]): Extra parameters merged into
            every remote call (e.g. `ExpectedBucketOwner`).
    """

    part_size: int = DEFAULT_COPY_PART_SIZE
    concurrency: int = DEFAULT_COPY_CONCURRENCY
    timeout_s: float = DEFAULT_COPY_TIMEOUT_S
    leave_parts_on_error: bool = False
    request_options: Mapping[str, Any] = field(default_factory=dict)

    def replace(self, **overrides: Any) -> "CopierConfig":
        """
        Returns a copy of this configuration with the given fields overridden.

        Args:
            **overrides: Field names and their new values.

        Returns:
            CopierConfig: The layered configuration. `self` is left untouched.
        """
        if not overrides:
            return self
        return dataclasses.replace(self, **overrides)
