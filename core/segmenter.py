# core/segmenter.py
import asyncio
import math
import re
import subprocess
from pathlib import Path
from typing import List
import ffmpeg
from config.settings import settings
import logging
from util.errors import ProbeFailed, SegmentationFailed
from util.timing import timed

logger = logging.getLogger(__name__)

SEGMENT_PREFIX = "chunk"
_INDEX = re.compile(rf"^{SEGMENT_PREFIX}(\d+)$")


def expected_segment_count(duration: float, window: int) -> int:
    return max(1, math.ceil(duration / window))


def probe_duration(path: Path) -> float:
    """
    Container duration in seconds via ffprobe. Any failure is fatal for the job:
    without a duration we cannot tell whether to split.
    """
    try:
        info = ffmpeg.probe(str(path))
        duration = float(info["format"]["duration"])
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
        logger.error("segment.probe.error err=%s", stderr.strip()[-300:])
        raise ProbeFailed()
    except OSError as e:
        logger.error("segment.probe.spawn.error err=%s", e)
        raise ProbeFailed() from e
    except (KeyError, TypeError, ValueError):
        logger.error("segment.probe.no_duration file=%s", path.name)
        raise ProbeFailed()
    if duration <= 0:
        raise ProbeFailed()
    return duration


def start_split(path: Path, extension: str, window: int) -> subprocess.Popen:
    """
    Launch ffmpeg to cut `path` into `window`-second pieces next to it without
    re-encoding: chunk000<ext>, chunk001<ext>, ...
    """
    pattern = str(path.parent / f"{SEGMENT_PREFIX}%03d{extension}")
    try:
        return (
            ffmpeg.input(str(path))
            .output(
                pattern,
                f="segment",
                segment_time=window,
                c="copy",
                reset_timestamps=1,
            )
            .overwrite_output()
            .run_async(pipe_stdout=True, pipe_stderr=True)
        )
    except OSError as e:
        logger.error("segment.split.spawn.error err=%s", e)
        raise SegmentationFailed() from e


async def wait_split(process: subprocess.Popen) -> None:
    """
    Wait for a split to finish. If the job is cancelled meanwhile, the child is
    killed and reaped before the cancellation propagates.
    """
    try:
        _, stderr = await asyncio.to_thread(process.communicate)
    except asyncio.CancelledError:
        process.kill()
        await asyncio.to_thread(process.wait)
        logger.warning("segment.split.killed")
        raise
    if process.returncode != 0:
        text = stderr.decode(errors="replace") if stderr else ""
        logger.error(
            "segment.split.error code=%s err=%s", process.returncode, text.strip()[-300:]
        )
        raise SegmentationFailed()


def list_segments(directory: Path, extension: str) -> List[Path]:
    """
    Split outputs ordered by their numeric index (chronological order).
    """
    found = []
    for p in directory.iterdir():
        if p.suffix != extension:
            continue
        m = _INDEX.match(p.stem)
        if m:
            found.append((int(m.group(1)), p))
    return [p for _, p in sorted(found)]


async def segment(
    path: Path, extension: str, *, window: int = settings.SEGMENT_SECONDS
) -> List[Path]:
    """
    Ordered segment paths for `path`.
    Short audio (<= window) is returned as-is as the only segment.
    """
    duration = await asyncio.to_thread(probe_duration, path)
    logger.info("segment.probe duration=%.1f window=%d", duration, window)
    if duration <= window:
        return [path]

    expected = expected_segment_count(duration, window)
    with timed(logger, "segment.split", expected=expected):
        await wait_split(start_split(path, extension, window))

    segments = list_segments(path.parent, extension)
    if not segments:
        raise SegmentationFailed()
    if len(segments) != expected:
        # stream copy cuts on packet boundaries, so counts can drift by one
        logger.warning("segment.count.mismatch expected=%d got=%d", expected, len(segments))
    logger.info("segment.ok count=%d", len(segments))
    return segments
