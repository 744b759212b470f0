# core/capabilities.py
from pathlib import Path
from typing import Awaitable, Callable, List, Protocol
from core.entities import ResolvedEpisode


class SpeechToText(Protocol):
    async def transcribe(self, path: Path) -> str:
        """Plain text for one audio file, in the configured language."""
        ...


class TextGenerator(Protocol):
    async def complete(
        self,
        *,
        system: str,
        user: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str: ...


class ModelProvider(SpeechToText, TextGenerator, Protocol):
    pass


# Collaborators injected into the orchestrator
Resolver = Callable[[str], Awaitable[ResolvedEpisode]]
Fetcher = Callable[[str, Path], Awaitable[Path]]
Segmenter = Callable[[Path, str], Awaitable[List[Path]]]
ProviderFactory = Callable[[str], ModelProvider]
