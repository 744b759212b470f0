# controller/audio_controller.py
from urllib.parse import quote
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from service.audio_proxy_service import AudioProxyService
from util.constants import InternalURIs
from util.functions import safe_filename
from controller.controller_dependencies import get_audio_proxy_service, rate_limiter

audio_router = APIRouter(dependencies=[Depends(rate_limiter)])


@audio_router.get(InternalURIs.PROXY_DOWNLOAD)
async def proxy_download(
    url: str | None = Query(default=None),
    service: AudioProxyService = Depends(get_audio_proxy_service),
):
    body = await service.open_passthrough(url)
    return StreamingResponse(
        body,
        media_type="audio/mpeg",
        headers={"Content-Disposition": 'attachment; filename="podcast.mp3"'},
    )


@audio_router.get(InternalURIs.PROXY_AUDIO)
async def proxy_audio(
    url: str | None = Query(default=None),
    filename: str = Query(default="podcast"),
    service: AudioProxyService = Depends(get_audio_proxy_service),
):
    body = service.open_transcode(url)
    name = quote(safe_filename(filename))
    return StreamingResponse(
        body,
        media_type="audio/mpeg",
        headers={"Content-Disposition": f'attachment; filename="{name}.mp3"'},
    )
