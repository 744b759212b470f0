# controller/podcast_controller.py
from fastapi import APIRouter, Depends, Header
from fastapi.responses import StreamingResponse
from model.api import TranscribeRequest
from service.podcast_service import PodcastService
from util.constants import InternalURIs
from controller.controller_dependencies import get_podcast_service, rate_limiter

podcast_router = APIRouter(dependencies=[Depends(rate_limiter)])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # nginx: do not buffer the event stream
}


@podcast_router.post(InternalURIs.TRANSCRIBE)
async def transcribe(
    payload: TranscribeRequest,
    x_api_key: str | None = Header(default=None),
    service: PodcastService = Depends(get_podcast_service),
):
    # Validation errors surface as plain JSON before the stream opens.
    job = service.create_job(payload.url, x_api_key or payload.apiKey)
    return StreamingResponse(
        service.stream_job(job), media_type="text/event-stream", headers=SSE_HEADERS
    )
