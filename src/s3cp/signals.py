# src/s3cp/signals.py
"""
Translation of OS shutdown signals into an asyncio event.

The CLI races a running copy against this event so that Ctrl-C cancels the
copy session, which aborts its multipart upload, instead of killing the
process with parts left behind.
"""

import asyncio
import logging
import os
import signal
from types import FrameType
from typing import Any, Callable, Dict, Optional, Tuple

logger: logging.Logger = logging.getLogger(__name__)

_SignalHandler = Callable[[int, Optional[FrameType]], Any]

HANDLED_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class GracefulShutdown:
    """
    An async context manager that sets an `asyncio.Event` on SIGINT/SIGTERM.

    The first signal sets the event. A second one exits immediately, for when
    the cleanup itself hangs. Previous handlers are restored on exit.
    """

    def __init__(self) -> None:
        self._event: asyncio.Event = asyncio.Event()
        self._old_handlers: Dict[signal.Signals, _SignalHandler] = {}

    async def __aenter__(self) -> asyncio.Event:
        """
        Installs the signal handlers.

        Returns:
            asyncio.Event: Set when the first handled signal is received.
        """
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()

        def _handler(sig: int, _: Optional[FrameType]) -> None:
            if self._event.is_set():
                logger.critical("Received second shutdown signal. Exiting now.")
                os._exit(1)
            logger.warning(
                f"Received {signal.strsignal(sig)}. Cancelling the copy; "
                "send it again to exit immediately."
            )
            loop.call_soon_threadsafe(self._event.set)

        for sig in HANDLED_SIGNALS:
            try:
                # Only possible from the main thread.
                self._old_handlers[sig] = signal.signal(sig, _handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not set handler for {sig.name}: {e}")

        return self._event

    async def __aexit__(self, *args: Any) -> None:
        """Restores the previous signal handlers."""
        for sig, handler in self._old_handlers.items():
            try:
                signal.signal(sig, handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not restore handler for {sig.name}: {e}")
        self._old_handlers.clear()
