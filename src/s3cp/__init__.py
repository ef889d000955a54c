# src/s3cp/__init__.py
"""
s3cp: Server-side copies of S3 objects, in concurrent parts when they are large.

Objects smaller than the configured part size are copied with a single
request. Larger ones are copied as a multipart upload whose byte ranges are
copied concurrently by the service, then assembled in order. The source can
be deleted once the copy has succeeded.

The primary entry point for programmatic use is the `Copier` class.
"""

from typing import List

from s3cp.config import CopierConfig
from s3cp.copier import Copier
from s3cp.request import CopyRequest
from s3cp.session import CopySession

__all__: List[str] = ["Copier", "CopierConfig", "CopyRequest", "CopySession"]
