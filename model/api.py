# model/api.py
from typing import List
from pydantic import BaseModel, Field
from util.enums import Stage


class ValidateKeyRequest(BaseModel):
    apiKey: str = Field(min_length=1)


class ValidateKeyResponse(BaseModel):
    ok: bool


class TranscribeRequest(BaseModel):
    url: str = Field(min_length=1)
    # Optional here: the x-api-key header takes precedence.
    apiKey: str | None = None


class DonePayload(BaseModel):
    title: str
    transcript: str
    audioUrl: str
    summary: str
    highlights: List[str]
    category: str


class StreamEvent(BaseModel):
    stage: Stage
    progress: int | None = Field(default=None, ge=0, le=100)
    message: str | None = None
    data: DonePayload | None = None
    error: str | None = None

    def wire(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)
