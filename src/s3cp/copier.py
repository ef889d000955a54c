# src/s3cp/copier.py
"""The long-lived entry point for copying objects."""

import logging
from typing import Any, Awaitable, Callable, Optional

from s3cp.clients import S3Api
from s3cp.config import CopierConfig
from s3cp.events import EventSink
from s3cp.exceptions import ConfigError
from s3cp.request import CopyRequest
from s3cp.session import CopySession

logger: logging.Logger = logging.getLogger(__name__)

RegionClientFactory = Callable[[str], Awaitable[S3Api]]


class Copier:
    """
    Copies objects within an S3 service, in parts when they are large.

    A `Copier` is built once and can run any number of copies, each in its
    own `CopySession`.
    """

    def __init__(
        self,
        client: S3Api,
        config: Optional[CopierConfig] = None,
        client_for_region: Optional[RegionClientFactory] = None,
        on_event: Optional[EventSink] = None,
    ) -> None:
        """
        Initializes the copier.

        Args:
            client (S3Api): The client for the destination region. Also used
                for the source when no source region is given.
            config (CopierConfig, optional): The default tunables.
            client_for_region (RegionClientFactory, optional): Returns a
                client bound to a region; required for cross-region copies.
            on_event (EventSink, optional): Receives the events of every session.
        """
        self.client: S3Api = client
        self.config: CopierConfig = config or CopierConfig()
        self._client_for_region: Optional[RegionClientFactory] = client_for_region
        self._on_event: Optional[EventSink] = on_event

    async def copy(self, request: CopyRequest, **overrides: Any) -> CopySession:
        """
        Copies an object and waits for the copy to conclude.

        Args:
            request (CopyRequest): What to copy.
            **overrides: `CopierConfig` fields to override for this copy only.

        Returns:
            CopySession: The concluded session.

        Raises:
            S3CpError: The first failure of the copy.
        """
        session: CopySession = await self.start(request, **overrides)
        await session.wait()
        return session

    async def start(self, request: CopyRequest, **overrides: Any) -> CopySession:
        """
        Starts a copy and returns once it has been dispatched.

        A multipart copy may still be running; await `CopySession.wait()`
        for its outcome.
        """
        session: CopySession = await self.new_session(request, **overrides)
        return await session.start()

    async def new_session(
        self, request: CopyRequest, **overrides: Any
    ) -> CopySession:
        """Builds the session for a request without starting it."""
        config: CopierConfig = self.config.replace(**overrides)
        source_client: S3Api = self.client
        if request.source_region:
            if self._client_for_region is None:
                raise ConfigError(
                    f"Source region '{request.source_region}' was given, "
                    "but no region client factory is configured."
                )
            source_client = await self._client_for_region(request.source_region)
        return CopySession(
            request, config, self.client, source_client, on_event=self._on_event
        )
