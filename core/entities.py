# core/entities.py
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class ResolvedEpisode:
    audio_url: str
    title: str


@dataclass(frozen=True)
class Transcript:
    """
    Ordered, append-only fold of segment texts.
    `extend` returns a new Transcript; `text` joins parts with newlines.
    """

    parts: Tuple[str, ...] = field(default_factory=tuple)

    def extend(self, text: str) -> "Transcript":
        return Transcript(parts=self.parts + (text.strip(),))

    @property
    def text(self) -> str:
        return "\n".join(self.parts)
