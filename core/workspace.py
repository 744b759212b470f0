# core/workspace.py
import shutil
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator
import logging

logger = logging.getLogger(__name__)

DIR_PREFIX = "podcast-digest-"
CLEANUP_ATTEMPTS = 2


def workspace_path(root: Path, job_id: str) -> Path:
    return Path(root) / f"{DIR_PREFIX}{job_id}"


def _remove(path: Path, job_id: str) -> None:
    # A killed ffmpeg child can still be flushing a segment on the first pass.
    for attempt in range(1, CLEANUP_ATTEMPTS + 1):
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
            logger.info("workspace.removed job=%s", job_id)
            return
        except OSError:
            if attempt == CLEANUP_ATTEMPTS:
                logger.error("workspace.cleanup.error job=%s", job_id, exc_info=True)
            else:
                logger.warning("workspace.cleanup.retry job=%s", job_id)


@asynccontextmanager
async def job_workspace(root: Path, job_id: str) -> AsyncIterator[Path]:
    """
    Private scratch directory for one job, removed on every exit path
    (success, pipeline error, timeout, cancellation).
    """
    path = workspace_path(root, job_id)
    path.mkdir(parents=True, exist_ok=False)
    logger.info("workspace.created job=%s", job_id)
    try:
        yield path
    finally:
        _remove(path, job_id)

