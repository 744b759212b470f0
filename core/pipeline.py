# core/pipeline.py
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional
from core.capabilities import Fetcher, ProviderFactory, Resolver, Segmenter
from core.streaming import EventChannel
from core.summarizer import SummarizationEngine, SummarizerConfig
from core.transcript_assembler import BAND_END, assemble
from core.workspace import job_workspace
from model.api import DonePayload, StreamEvent
from model.job import Job
import logging
from util.enums import ErrorMessage, Stage
from util.errors import AuthInvalid, JobTimeout, PipelineError, TranscriptionFailed
from util.timing import heartbeat, timed

logger = logging.getLogger(__name__)

SUMMARY_START = BAND_END
SUMMARY_CEILING = 97


def _user_message(exc: BaseException) -> str:
    """
    Text for the terminal error event. Provider auth failures always read the
    same, whatever the provider said.
    """
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return JobTimeout().message
    if isinstance(exc, AuthInvalid):
        return ErrorMessage.INVALID_API_KEY.value.message
    if isinstance(exc, PipelineError):
        return exc.message
    raw = str(exc)
    if "invalid_api_key" in raw or "401" in raw:
        return ErrorMessage.INVALID_API_KEY.value.message
    return raw or "Unknown error"


class JobOrchestrator:
    """
    Runs one job end to end:
      parsing -> downloading -> transcribing -> summarizing -> done
    and reports every step on the job's EventChannel.

    Guarantees:
    - exactly one terminal event (done or error), then the channel is closed
    - the job's scratch directory is gone before the terminal event is sent
    - the whole run is bounded by `job_timeout`
    """

    def __init__(
        self,
        *,
        resolver: Resolver,
        fetcher: Fetcher,
        segmenter: Segmenter,
        providers: ProviderFactory,
        summarizer_config: SummarizerConfig,
        temp_root: Path,
        job_timeout: float = 600.0,
        heartbeat_seconds: float = 3.0,
        transcribe_options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._resolve = resolver
        self._fetch = fetcher
        self._segment = segmenter
        self._providers = providers
        self._summarizer_config = summarizer_config
        self._temp_root = Path(temp_root)
        self._job_timeout = job_timeout
        self._heartbeat_seconds = heartbeat_seconds
        self._transcribe_options = transcribe_options or {}

    async def run(self, job: Job, channel: EventChannel) -> None:
        try:
            terminal = await self._run_guarded(job, channel)
            channel.send(terminal)
        finally:
            channel.close()

    async def _run_guarded(self, job: Job, channel: EventChannel) -> StreamEvent:
        logger.info("job.start job=%s", job.id)
        try:
            with timed(logger, "job.run", job=job.id):
                async with job_workspace(self._temp_root, job.id) as workdir:
                    await asyncio.wait_for(
                        self._execute(job, channel, workdir), timeout=self._job_timeout
                    )
            return self._finish(job)
        except PipelineError as e:
            logger.warning(
                "job.failed job=%s stage=%s kind=%s", job.id, job.stage.value, type(e).__name__
            )
            return self._fail(job, _user_message(e))
        except (asyncio.TimeoutError, TimeoutError) as e:
            logger.error("job.timeout job=%s stage=%s", job.id, job.stage.value)
            return self._fail(job, _user_message(e))
        except Exception as e:
            logger.exception("job.crashed job=%s stage=%s", job.id, job.stage.value)
            return self._fail(job, _user_message(e))

    async def _execute(self, job: Job, channel: EventChannel, workdir: Path) -> None:
        # 1. parsing
        self._emit(job, channel, Stage.PARSING, 1)
        self._emit(job, channel, Stage.PARSING, 5)
        episode = await self._resolve(job.source_url)
        job.title, job.audio_url = episode.title, episode.audio_url

        # 2. downloading
        self._emit(job, channel, Stage.DOWNLOADING, 10)
        audio = await self._fetch(episode.audio_url, workdir)
        self._emit(job, channel, Stage.DOWNLOADING, 25)

        # 3. transcribing
        self._emit(job, channel, Stage.TRANSCRIBING, 30)
        provider = self._providers(job.api_key.get_secret_value())
        segments = await self._segment(audio, audio.suffix)
        transcript = await assemble(
            provider,
            segments,
            lambda p: self._emit(job, channel, Stage.TRANSCRIBING, p),
            **self._transcribe_options,
        )
        job.transcript = transcript.text
        if not job.transcript.strip():
            raise TranscriptionFailed("No speech was recognised in this episode")

        # 4. summarizing
        self._emit(job, channel, Stage.SUMMARIZING, SUMMARY_START)
        engine = SummarizationEngine(provider, self._summarizer_config)

        def on_notice(message: str, fraction: Optional[float]) -> None:
            progress = None
            if fraction is not None:
                progress = SUMMARY_START + int(fraction * (SUMMARY_CEILING - SUMMARY_START))
            self._emit(job, channel, Stage.SUMMARIZING, progress, message)

        async with heartbeat(
            self._heartbeat_seconds, lambda: self._emit(job, channel, Stage.SUMMARIZING)
        ):
            job.result = await engine.summarize(job.transcript, on_notice)

    @staticmethod
    def _emit(
        job: Job,
        channel: EventChannel,
        stage: Stage,
        progress: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        job.advance(stage, progress, message)
        channel.send(StreamEvent(stage=job.stage, progress=job.progress, message=message))

    @staticmethod
    def _finish(job: Job) -> StreamEvent:
        result = job.result
        if result is None:
            raise RuntimeError("job finished without a summary")
        payload = DonePayload(
            title=job.title or "",
            transcript=job.transcript,
            audioUrl=job.audio_url or "",
            summary=result.summary,
            highlights=list(result.highlights),
            category=result.category,
        )
        job.advance(Stage.DONE, 100)
        logger.info("job.done job=%s chars=%d", job.id, len(job.transcript))
        return StreamEvent(stage=Stage.DONE, progress=100, data=payload)

    @staticmethod
    def _fail(job: Job, message: str) -> StreamEvent:
        job.advance(Stage.ERROR, message=message)
        return StreamEvent(stage=Stage.ERROR, error=message)
