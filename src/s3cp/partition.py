# src/s3cp/partition.py
"""Splitting an object into the byte ranges copied by a multipart copy."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class PartTask:
    """
    One ranged copy to perform.

    Attributes:
        part_number (int): The 1-based part number.
        first_byte (int): Offset of the first byte of the range.
        last_byte (int): Offset of the last byte of the range (inclusive).
        upload_id (str): The multipart upload the part belongs to.
    """

    part_number: int
    first_byte: int
    last_byte: int
    upload_id: str

    @property
    def byte_range(self) -> str:
        """The range in `CopySourceRange` form."""
        return f"bytes={self.first_byte}-{self.last_byte}"


@dataclass(frozen=True)
class PartResult:
    """
    The outcome of a `PartTask`: either an entity tag or an error.

    Attributes:
        part_number (int): The part number of the task.
        etag (str, optional): The entity tag of the copied part.
        error (Exception, optional): The failure, if the copy failed.
    """

    part_number: int
    etag: Optional[str] = None
    error: Optional[Exception] = None


def part_count(size: int, part_size: int) -> int:
    """Number of parts needed to cover `size` bytes, i.e. ceil(size / part_size)."""
    return -(-size // part_size)


def partition(size: int, part_size: int, upload_id: str) -> List[PartTask]:
    """
    Produces the contiguous, non-overlapping ranges covering an object.

    The part count is not checked against the service's maximum; the service
    rejects an upload that exceeds it.

    Args:
        size (int): The object size in bytes.
        part_size (int): The size of every part but the last.
        upload_id (str): The multipart upload identifier.

    Returns:
        List[PartTask]: Tasks numbered 1..N, the last one ending at `size - 1`.
    """
    tasks: List[PartTask] = []
    for index in range(part_count(size, part_size)):
        offset: int = index * part_size
        tasks.append(
            PartTask(
                part_number=index + 1,
                first_byte=offset,
                last_byte=min(offset + part_size, size) - 1,
                upload_id=upload_id,
            )
        )
    return tasks
