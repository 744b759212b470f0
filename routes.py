# routes.py
from fastapi import FastAPI
from controller.audio_controller import audio_router
from controller.podcast_controller import podcast_router
from controller.validation_controller import validation_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(validation_router)
    app.include_router(podcast_router)
    app.include_router(audio_router)
