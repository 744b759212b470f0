# service/podcast_service.py
import asyncio
from typing import AsyncIterator, Optional, Set
from pydantic import SecretStr
from config.settings import settings
from core.pipeline import JobOrchestrator
from core.streaming import EventChannel, sse_stream
from model.job import Job
import logging
from util.enums import ErrorMessage
from util.errors import InvalidInput
from util.functions import host_matches

logger = logging.getLogger(__name__)

# Jobs whose client went away; held so the tasks finish (and clean up) unobserved.
_orphaned: Set["asyncio.Task[None]"] = set()


class PodcastService:
    def __init__(
        self,
        orchestrator: JobOrchestrator,
        supported_host: str = settings.SUPPORTED_HOST,
        server_api_key: str = settings.GROQ_API_KEY,
    ) -> None:
        self._orchestrator = orchestrator
        self._supported_host = supported_host
        self._server_api_key = server_api_key

    def create_job(self, url: str, api_key: Optional[str]) -> Job:
        """
        Validate the submission and build the job. Nothing touches disk here, so a
        rejected request leaves no transient state behind.
        """
        key = (api_key or "").strip() or self._server_api_key
        if not key:
            logger.warning("job.reject reason=missing_key")
            raise InvalidInput.from_info(ErrorMessage.MISSING_API_KEY)
        url = (url or "").strip()
        if not host_matches(url, self._supported_host):
            logger.warning("job.reject reason=unsupported_url")
            raise InvalidInput.from_info(ErrorMessage.INVALID_URL)

        job = Job(source_url=url, api_key=SecretStr(key))
        logger.info("job.accepted job=%s", job.id)
        return job

    async def stream_job(self, job: Job) -> AsyncIterator[bytes]:
        """
        Run the job in the background and relay its events as SSE frames.
        If the consumer stops early (disconnect), the job keeps running to its own
        end so its scratch directory is still removed; its events are discarded.
        """
        channel = EventChannel()
        task = asyncio.create_task(self._orchestrator.run(job, channel))
        try:
            async for frame in sse_stream(channel):
                yield frame
        finally:
            if not task.done():
                logger.warning("stream.client.gone job=%s stage=%s", job.id, job.stage.value)
                channel.detach()
                _orphaned.add(task)
                task.add_done_callback(_orphaned.discard)
