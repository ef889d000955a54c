# src/s3cp/cli.py
"""Command-line interface for the s3cp tool."""

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

import click
from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)

from s3cp.config import (
    DEFAULT_COPY_CONCURRENCY,
    DEFAULT_COPY_TIMEOUT_S,
    MIN_COPY_PART_SIZE,
    CopierConfig,
    S3Config,
)
from s3cp.events import CopyEvent, EventKind
from s3cp.exceptions import S3CpError
from s3cp.request import CopyRequest, parse_locator
from s3cp.signals import GracefulShutdown

logger: logging.Logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure rich-based logging for the application."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # Silence noisy loggers
    for logger_name in ["aiobotocore", "botocore", "urllib3"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def build_request(
    source: Optional[str],
    dest: str,
    content_type: str,
    size: int,
    move: bool,
    src_region: Optional[str],
    sha1: Optional[str],
) -> CopyRequest:
    """
    Builds a copy request from the command-line arguments.

    Args:
        source (str, optional): The source as `bucket/key`.
        dest (str): The destination as `bucket/key`.
        content_type (str): The content type of the destination object.
        size (int): The declared source size, or a negative value to look it up.
        move (bool): Delete the source after the copy.
        src_region (str, optional): The source bucket's region.
        sha1 (str, optional): A SHA-1 digest stored as object metadata.

    Returns:
        CopyRequest: The request.
    """
    bucket: str
    key: str
    bucket, key = parse_locator(dest)
    attributes: Dict[str, Any] = {"ContentType": content_type}
    if sha1:
        attributes["Metadata"] = {"sha1": sha1}
        attributes["MetadataDirective"] = "REPLACE"
    return CopyRequest(
        copy_source=source,
        bucket=bucket,
        key=key,
        size=size,
        source_region=src_region or None,
        delete=move,
        attributes=attributes,
    )


class _ProgressReporter:
    """Advances a rich progress bar from copy events."""

    def __init__(self, progress: Progress) -> None:
        self._progress: Progress = progress
        self._task_id: TaskID = progress.add_task("Copying...", total=None)

    def __call__(self, event: CopyEvent) -> None:
        if event.kind is EventKind.MULTIPART_CREATED:
            self._progress.update(self._task_id, total=event.part_count)
        elif event.kind is EventKind.PART_COPIED:
            self._progress.advance(self._task_id)
        elif event.kind is EventKind.OBJECT_COPIED:
            self._progress.update(self._task_id, total=1, completed=1)


async def main_async(
    request: CopyRequest, s3_config: S3Config, copier_config: CopierConfig
) -> None:
    """
    Asynchronously run one copy, cancelling it on a shutdown signal.

    Args:
        request (CopyRequest): What to copy.
        s3_config (S3Config): Connection settings of the destination region.
        copier_config (CopierConfig): The copy tunables.
    """
    # Lazily import to keep the CLI fast
    from s3cp.clients import S3ClientFactory
    from s3cp.copier import Copier
    from s3cp.session import CopySession

    progress: Progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        transient=True,
    )
    async with (
        GracefulShutdown() as shutdown_event,
        S3ClientFactory(
            s3_config, max_pool_connections=copier_config.concurrency + 8
        ) as factory,
    ):
        with progress:
            copier: Copier = Copier(
                await factory.client_for_region(),
                copier_config,
                client_for_region=factory.client_for_region,
                on_event=_ProgressReporter(progress),
            )
            session: CopySession = await copier.new_session(request)
            copy_task: asyncio.Task[None] = asyncio.create_task(session.run())
            shutdown_task: asyncio.Task[bool] = asyncio.create_task(
                shutdown_event.wait()
            )

            done, _ = await asyncio.wait(
                {copy_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
            )
            shutdown_task.cancel()
            if copy_task not in done:
                logger.warning("Shutdown signal received. Cancelling the copy.")
                if session.started:
                    session.cancel()
                else:
                    copy_task.cancel()
            await copy_task


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--source",
    help="The source bucket and key, e.g. bucket/key/one.",
)
@click.option(
    "--dest",
    required=True,
    help="The destination bucket and key.",
)
@click.option(
    "--region",
    default=None,
    help="The region of the destination bucket. [default: $AWS_DEFAULT_REGION]",
)
@click.option(
    "--src-region",
    default=None,
    help="The source bucket region, if different from the destination region.",
)
@click.option(
    "--endpoint-url",
    default=None,
    envvar="S3CP_ENDPOINT_URL",
    help="A custom S3 endpoint URL.",
)
@click.option(
    "--content-type",
    default="application/octet-stream",
    help="The content type of the object being copied.",
    show_default=True,
)
@click.option(
    "--size",
    type=int,
    default=-1,
    help="The size of the object being copied; looked up when not positive.",
    show_default=True,
)
@click.option(
    "--sha1",
    default=None,
    help="The SHA-1 hash of the object, stored as metadata.",
)
@click.option(
    "--move",
    is_flag=True,
    default=False,
    help="Delete the source object after a successful copy.",
)
@click.option(
    "--part-size",
    type=int,
    default=MIN_COPY_PART_SIZE,
    help="Size in bytes of each copied part.",
    show_default=True,
)
@click.option(
    "--concurrency",
    type=int,
    default=DEFAULT_COPY_CONCURRENCY,
    help="Number of parts to copy at once.",
    show_default=True,
)
@click.option(
    "--timeout",
    type=float,
    default=DEFAULT_COPY_TIMEOUT_S,
    help="Deadline in seconds for the whole copy.",
    show_default=True,
)
@click.option(
    "--leave-parts-on-error",
    is_flag=True,
    default=False,
    help="Do not abort a failed multipart copy; keep its parts for recovery.",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the logging level.",
    show_default=True,
)
def cli(**kwargs: Any) -> None:
    """
    Copy an object between two S3 locations.

    Objects smaller than the part size are copied in a single request; larger
    ones are copied server-side in concurrent parts and assembled at the
    destination. With --move, the source is deleted once the copy succeeded.

    Credentials are taken from the environment (or a .env file) through the
    usual AWS variables.
    """
    load_dotenv()
    setup_logging(kwargs["log_level"])

    try:
        request: CopyRequest = build_request(
            source=kwargs["source"],
            dest=kwargs["dest"],
            content_type=kwargs["content_type"],
            size=kwargs["size"],
            move=kwargs["move"],
            src_region=kwargs["src_region"],
            sha1=kwargs["sha1"],
        )
        s3_config: S3Config = S3Config.from_env(kwargs["region"])
        if kwargs["endpoint_url"]:
            s3_config = s3_config.with_endpoint(kwargs["endpoint_url"])
        copier_config: CopierConfig = CopierConfig(
            part_size=kwargs["part_size"],
            concurrency=kwargs["concurrency"],
            timeout_s=kwargs["timeout"],
            leave_parts_on_error=kwargs["leave_parts_on_error"],
        )

        asyncio.run(main_async(request, s3_config, copier_config))
        logger.info(f"✅ Copied '{request.copy_source}' to '{request.destination}'.")
    except S3CpError as e:
        logger.critical(f"A critical application error occurred: {e}")
        sys.exit(1)
    except asyncio.CancelledError:
        logger.warning("Shutdown signal received. Exiting.")
        sys.exit(1)
    except Exception:
        logger.critical(
            "An unexpected error caused the application to fail:", exc_info=True
        )
        sys.exit(1)


if __name__ == "__main__":
    cli()
