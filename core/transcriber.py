# core/transcriber.py
import asyncio
from pathlib import Path
from typing import Awaitable, Callable
import httpx
from config.settings import settings
from core.capabilities import SpeechToText
import logging
from util.errors import AuthInvalid, ProviderError, TranscriptionFailed

logger = logging.getLogger(__name__)

# Connection reset, DNS/connect failure, timeouts. Everything else is not retried.
TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)


async def transcribe_segment(
    stt: SpeechToText,
    path: Path,
    *,
    attempts: int = settings.TRANSCRIBE_ATTEMPTS,
    backoff: float = settings.TRANSCRIBE_BACKOFF_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> str:
    """
    Transcribe one segment, retrying transient network failures with doubling
    backoff (1s, 2s, ...). Auth failures propagate as-is; other provider errors
    fail immediately.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await stt.transcribe(path)
        except TRANSIENT_ERRORS as e:
            if attempt >= attempts:
                logger.error(
                    "transcribe.exhausted file=%s attempts=%d err=%s",
                    path.name,
                    attempt,
                    type(e).__name__,
                )
                raise TranscriptionFailed(
                    f"Transcription failed after {attempt} attempts (network error)"
                ) from e
            delay = backoff * (2 ** (attempt - 1))
            logger.warning(
                "transcribe.retry file=%s attempt=%d delay=%.1fs err=%s",
                path.name,
                attempt,
                delay,
                type(e).__name__,
            )
            await sleep(delay)
        except AuthInvalid:
            raise
        except ProviderError as e:
            logger.error("transcribe.provider.error file=%s status=%d", path.name, e.status_code)
            raise TranscriptionFailed(f"Transcription failed: {e.detail or e.status_code}") from e

    # attempts < 1
    raise TranscriptionFailed()
