import os

# Settings are read at import time; provide the required values before any app import.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("ALLOWED_ORIGIN", "http://localhost:3000")
os.environ.setdefault("RATE_LIMIT_TIMES", "100")
os.environ.setdefault("RATE_LIMIT_SECONDS", "60")
os.environ.setdefault("TRUST_PROXY", "false")

import pytest

from core.entities import ResolvedEpisode
from core.summarizer import SummarizerConfig


class FakeProvider:
    """Scripted stand-in for GroqClient. Queue items are return values or exceptions."""

    def __init__(self, transcripts=None, completions=None):
        self.transcripts = list(transcripts or [])
        self.completions = list(completions or [])
        self.transcribed = []
        self.calls = []

    async def transcribe(self, path):
        self.transcribed.append(path)
        item = self.transcripts.pop(0) if self.transcripts else f"text of {path.name}。"
        if isinstance(item, BaseException):
            raise item
        return item

    async def complete(self, *, system, user, model, temperature, max_tokens):
        self.calls.append(
            {
                "system": system,
                "user": user,
                "model": model,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        item = self.completions.pop(0) if self.completions else "# Episode notes\n\n- first point"
        if isinstance(item, BaseException):
            raise item
        return item


class Notices:
    """Collects (message, fraction) pairs passed to the summarizer's notice callback."""

    def __init__(self):
        self.items = []

    def __call__(self, message, fraction=None):
        self.items.append((message, fraction))

    @property
    def messages(self):
        return [m for m, _ in self.items]


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def notices():
    return Notices()


@pytest.fixture
def summarizer_config():
    return SummarizerConfig(
        primary_model="big-model",
        fallback_model="small-model",
        system_prompt="SYSTEM",
        partial_prompt="PART {length}\n{content}",
        merge_prompt="MERGE\n{content}",
        direct_max_chars=200,
        chunk_chars=80,
    )


@pytest.fixture
def fake_pipeline_parts():
    """
    Resolver/fetcher/segmenter doubles that behave like the real ones on disk:
    the fetcher writes input.m4a into the job directory and the segmenter writes
    three chunk files next to it.
    """

    async def resolve(url):
        return ResolvedEpisode(audio_url="https://media.example.com/ep1.m4a", title="Episode 1")

    async def fetch(audio_url, workdir):
        target = workdir / "input.m4a"
        target.write_bytes(b"fake-audio")
        return target

    async def segment(path, extension):
        out = []
        for i in range(3):
            seg = path.parent / f"chunk{i:03d}{extension}"
            seg.write_bytes(b"fake-segment")
            out.append(seg)
        return out

    return {"resolver": resolve, "fetcher": fetch, "segmenter": segment}


async def no_sleep(seconds):
    return None


@pytest.fixture
def instant_sleep():
    return no_sleep
