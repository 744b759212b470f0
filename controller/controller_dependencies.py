# controller/controller_dependencies.py
from pathlib import Path
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from core import media_fetcher, resolver, segmenter
from core.groq_client import make_provider
from core.pipeline import JobOrchestrator
from core.summarizer import SummarizerConfig
from service.api_key_validation_service import ApiKeyValidationService
from service.audio_proxy_service import AudioProxyService
from service.podcast_service import PodcastService

# Shared so tests can swap it out through app.dependency_overrides
rate_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)


def get_orchestrator() -> JobOrchestrator:
    return JobOrchestrator(
        resolver=resolver.resolve,
        fetcher=media_fetcher.fetch,
        segmenter=segmenter.segment,
        providers=make_provider,
        summarizer_config=SummarizerConfig.from_settings(settings),
        temp_root=Path(settings.TEMP_ROOT),
        job_timeout=settings.JOB_TIMEOUT_SECONDS,
        heartbeat_seconds=settings.HEARTBEAT_SECONDS,
    )


def get_podcast_service() -> PodcastService:
    return PodcastService(get_orchestrator())


def get_audio_proxy_service() -> AudioProxyService:
    return AudioProxyService()


def get_api_key_validation_service() -> ApiKeyValidationService:
    return ApiKeyValidationService()
