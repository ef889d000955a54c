# src/s3cp/clients.py
"""
The S3 capability consumed by the copy engine, and a region-keyed factory
of aiobotocore clients that satisfies it.
"""

import logging
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

from aiobotocore.session import AioSession, get_session
from botocore.config import Config as BotoConfig

from s3cp.config import S3Config

if TYPE_CHECKING:
    from types_aiobotocore_s3.client import S3Client

logger: logging.Logger = logging.getLogger(__name__)

USER_AGENT_EXTRA: str = "s3cp"


class S3Api(Protocol):
    """The remote operations the copy engine uses, in boto keyword form."""

    async def head_object(self, **kwargs: Any) -> Dict[str, Any]: ...

    async def copy_object(self, **kwargs: Any) -> Dict[str, Any]: ...

    async def create_multipart_upload(self, **kwargs: Any) -> Dict[str, Any]: ...

    async def upload_part_copy(self, **kwargs: Any) -> Dict[str, Any]: ...

    async def complete_multipart_upload(self, **kwargs: Any) -> Dict[str, Any]: ...

    async def abort_multipart_upload(self, **kwargs: Any) -> Dict[str, Any]: ...

    async def delete_object(self, **kwargs: Any) -> Dict[str, Any]: ...


class S3ClientFactory:
    """
    Creates and caches one aiobotocore S3 client per region.

    The factory is an async context manager; every client it created is
    closed on exit.
    """

    def __init__(self, s3_config: S3Config, max_pool_connections: int = 64) -> None:
        """
        Initialize the factory.

        Args:
            s3_config (S3Config): Connection settings. The region is replaced
                per client.
            max_pool_connections (int): HTTP pool size of each client; should
                cover the copy concurrency.
        """
        self._s3_config: S3Config = s3_config
        self._session: AioSession = get_session()
        # Explicitly use SigV4; ranged copies against non-AWS providers
        # require it.
        self._boto_config: BotoConfig = BotoConfig(
            signature_version="s3v4",
            max_pool_connections=max_pool_connections,
            retries={"max_attempts": s3_config.max_attempts, "mode": "standard"},
            user_agent_extra=USER_AGENT_EXTRA,
        )
        self._stack: Optional[AsyncExitStack] = None
        self._clients: Dict[str, "S3Client"] = {}

    @property
    def default_region(self) -> str:
        return self._s3_config.region

    async def __aenter__(self) -> "S3ClientFactory":
        self._stack = AsyncExitStack()
        await self._stack.__aenter__()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Closes every client created by this factory."""
        stack: Optional[AsyncExitStack] = self._stack
        self._stack = None
        self._clients.clear()
        if stack is not None:
            await stack.__aexit__(*args)

    async def client_for_region(self, region: Optional[str] = None) -> "S3Client":
        """
        Returns the client for a region, creating it on first use.

        Args:
            region (str, optional): The region. Defaults to the configured one.

        Returns:
            S3Client: An open aiobotocore S3 client.
        """
        if self._stack is None:
            raise RuntimeError(
                "S3ClientFactory must be used as an async context manager."
            )
        region = region or self._s3_config.region
        client: Optional["S3Client"] = self._clients.get(region)
        if client is None:
            logger.debug(f"Creating S3 client for region '{region}'.")
            client = await self._stack.enter_async_context(
                self._session.create_client(
                    "s3",
                    **self._s3_config.for_region(region).as_boto_dict(),
                    config=self._boto_config,
                )
            )
            self._clients[region] = client
        return client
