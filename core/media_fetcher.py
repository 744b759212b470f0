# core/media_fetcher.py
from pathlib import Path
from typing import Optional
import httpx
from config.settings import settings
import logging
from util.constants import BROWSER_USER_AGENT
from util.errors import FetchFailed, FetchTimeout
from util.functions import detect_extension
from util.timing import timed

logger = logging.getLogger(__name__)

PARTIAL_NAME = "download_audio_temp"
INPUT_STEM = "input"
CHUNK_BYTES = 64 * 1024


async def fetch(
    audio_url: str,
    workdir: Path,
    *,
    connect_timeout: float = settings.DOWNLOAD_CONNECT_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Path:
    """
    Stream remote audio into `workdir` chunk by chunk and return `input<ext>`.

    The extension comes from the URL path because the segmenter's demuxer is
    chosen from it.
    """
    extension = detect_extension(audio_url)
    partial = workdir / PARTIAL_NAME
    target = workdir / f"{INPUT_STEM}{extension}"
    written = 0

    try:
        with timed(logger, "fetch.audio", ext=extension):
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(connect_timeout),
                headers={"User-Agent": BROWSER_USER_AGENT},
                follow_redirects=True,
                transport=transport,
            ) as client:
                async with client.stream("GET", audio_url) as r:
                    r.raise_for_status()
                    with partial.open("wb") as fh:
                        async for chunk in r.aiter_bytes(CHUNK_BYTES):
                            fh.write(chunk)
                            written += len(chunk)
    except httpx.TimeoutException:
        logger.warning("fetch.timeout bytes=%d", written)
        raise FetchTimeout("Timed out downloading audio, please retry")
    except (httpx.HTTPError, OSError) as e:
        logger.warning("fetch.failed err=%s bytes=%d", type(e).__name__, written)
        raise FetchFailed()

    if written == 0:
        raise FetchFailed("Downloaded audio is empty")

    partial.rename(target)
    logger.info("fetch.ok bytes=%d ext=%s", written, extension)
    return target
