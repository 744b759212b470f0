# service/audio_proxy_service.py
import asyncio
from typing import AsyncIterator, Optional
import ffmpeg
import httpx
from config.settings import settings
from util.constants import BROWSER_USER_AGENT
from util.enums import ErrorMessage
from util.errors import AppError, InvalidInput
from util.functions import is_http_url
import logging

logger = logging.getLogger(__name__)

CHUNK_BYTES = 64 * 1024
TRANSCODE_BITRATE = "128k"


def _require_http(url: Optional[str]) -> str:
    if not url or not is_http_url(url):
        raise InvalidInput("Missing or invalid url parameter")
    return url


class AudioProxyService:
    """
    Pass-through endpoints for the player/download buttons. Stateless; nothing
    touches disk.
    """

    def __init__(
        self,
        connect_timeout: float = settings.PROXY_CONNECT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = connect_timeout
        self._transport = transport

    async def open_passthrough(self, url: Optional[str]) -> AsyncIterator[bytes]:
        """
        Connect upstream first (so failures become a JSON error), then hand back
        an iterator that relays the body and closes the connection when done.
        """
        url = _require_http(url)
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout, read=None),
            headers={"User-Agent": BROWSER_USER_AGENT},
            follow_redirects=True,
            transport=self._transport,
        )
        try:
            res = await client.send(client.build_request("GET", url), stream=True)
            res.raise_for_status()
        except httpx.HTTPError as e:
            await client.aclose()
            logger.error("proxy.download.error err=%s", type(e).__name__)
            raise AppError(
                ErrorMessage.UPSTREAM_AUDIO.value.message,
                ErrorMessage.UPSTREAM_AUDIO.value.http_status,
            )

        async def _relay() -> AsyncIterator[bytes]:
            sent = 0
            try:
                async for chunk in res.aiter_bytes(CHUNK_BYTES):
                    sent += len(chunk)
                    yield chunk
            finally:
                await res.aclose()
                await client.aclose()
                logger.info("proxy.download.done bytes=%d", sent)

        return _relay()

    def open_transcode(self, url: Optional[str]) -> AsyncIterator[bytes]:
        """
        Re-encode the remote audio to MP3 at a fixed bitrate and stream ffmpeg's
        stdout. ffmpeg reads the URL itself.
        """
        url = _require_http(url)
        try:
            process = (
                ffmpeg.input(url, user_agent=BROWSER_USER_AGENT)
                .output("pipe:1", format="mp3", acodec="libmp3lame", audio_bitrate=TRANSCODE_BITRATE)
                .global_args("-loglevel", "error")
                .run_async(pipe_stdout=True)
            )
        except OSError as e:
            logger.error("proxy.transcode.spawn.error err=%s", e)
            raise AppError(
                ErrorMessage.UPSTREAM_AUDIO.value.message,
                ErrorMessage.UPSTREAM_AUDIO.value.http_status,
            )

        async def _relay() -> AsyncIterator[bytes]:
            sent = 0
            try:
                while True:
                    chunk = await asyncio.to_thread(process.stdout.read, CHUNK_BYTES)
                    if not chunk:
                        break
                    sent += len(chunk)
                    yield chunk
            finally:
                if process.poll() is None:
                    process.kill()
                code = await asyncio.to_thread(process.wait)
                if code not in (0, -9):
                    # headers are already sent; the client just sees a short body
                    logger.error("proxy.transcode.failed code=%s bytes=%d", code, sent)
                else:
                    logger.info("proxy.transcode.done bytes=%d", sent)

        return _relay()
