# core/summarizer.py
from dataclasses import dataclass
from typing import Callable, Optional, Tuple
import httpx
from config.settings import Settings
from core.capabilities import TextGenerator
from core.text_chunks import split_transcript
from model.summary import SummaryResult
import logging
from util.errors import (
    GENERIC_WAIT,
    AuthInvalid,
    ProviderError,
    QuotaExhausted,
    RateLimited,
    SummarizationFailed,
)
from util.functions import extract_highlights
from util.timing import timed

logger = logging.getLogger(__name__)

PART_SEPARATOR = "\n\n---\n\n"

# (message, fraction of chunk work done or None)
NoticeFn = Callable[[str, Optional[float]], None]


def _ignore(message: str, fraction: Optional[float] = None) -> None:
    return None


@dataclass(frozen=True)
class SummarizerConfig:
    primary_model: str
    fallback_model: str
    system_prompt: str
    partial_prompt: str  # format fields: {length}, {content}
    merge_prompt: str  # format field: {content}
    direct_max_chars: int = 15000
    chunk_chars: int = 8000
    temperature: float = 0.6
    max_tokens: int = 6000
    partial_max_tokens: int = 4000

    @classmethod
    def from_settings(cls, s: Settings) -> "SummarizerConfig":
        return cls(
            primary_model=s.PRIMARY_MODEL,
            fallback_model=s.FALLBACK_MODEL,
            system_prompt=s.SUMMARY_SYSTEM_PROMPT,
            partial_prompt=s.SUMMARY_PARTIAL_PROMPT,
            merge_prompt=s.SUMMARY_MERGE_PROMPT,
            direct_max_chars=s.SUMMARY_DIRECT_MAX_CHARS,
            chunk_chars=s.SUMMARY_CHUNK_CHARS,
            temperature=s.SUMMARY_TEMPERATURE,
            max_tokens=s.SUMMARY_MAX_TOKENS,
            partial_max_tokens=s.SUMMARY_PARTIAL_MAX_TOKENS,
        )


class SummarizationEngine:
    """
    Transcript -> structured Markdown.

    Short transcripts go through one call. Long ones are split on sentence
    boundaries, each chunk is summarized on its own (no wrap-up), and a final
    call merges the partial notes into the full structure.

    Every call falls back once to the smaller model on rate limiting.
    """

    def __init__(self, llm: TextGenerator, config: SummarizerConfig) -> None:
        self._llm = llm
        self._cfg = config

    async def summarize(
        self, transcript: str, on_notice: Optional[NoticeFn] = None
    ) -> SummaryResult:
        notice = on_notice or _ignore
        try:
            if len(transcript) <= self._cfg.direct_max_chars:
                logger.info("summarize.direct chars=%d", len(transcript))
                summary = await self._generate(
                    f"TRANSCRIPT:\n\n{transcript}", self._cfg.max_tokens, notice
                )
            else:
                summary = await self._map_reduce(transcript, notice)
        except (QuotaExhausted, AuthInvalid):
            raise
        except ProviderError as e:
            logger.error("summarize.provider.error status=%d", e.status_code)
            raise SummarizationFailed(e.detail or str(e.status_code))
        except httpx.HTTPError as e:
            logger.error("summarize.transport.error err=%s", type(e).__name__)
            raise SummarizationFailed(str(e) or type(e).__name__)

        summary = summary.strip()
        if not summary:
            raise SummarizationFailed("the model returned an empty response")
        return SummaryResult(summary=summary, highlights=tuple(extract_highlights(summary)))

    async def _map_reduce(self, transcript: str, notice: NoticeFn) -> str:
        notice(
            f"Long transcript detected ({round(len(transcript) / 1000)}K characters), "
            "processing it in parts...",
            0.0,
        )
        chunks = [c.strip() for c in split_transcript(transcript, self._cfg.chunk_chars)]
        chunks = [c for c in chunks if c]
        logger.info("summarize.chunked chars=%d chunks=%d", len(transcript), len(chunks))

        partials: Tuple[str, ...] = ()
        for i, content in enumerate(chunks, start=1):
            notice(f"Analysing part {i}/{len(chunks)}...", (i - 1) / len(chunks))
            user = self._cfg.partial_prompt.format(length=len(content), content=content)
            with timed(logger, "summarize.part", part=i, total=len(chunks)):
                partials += (await self._generate(user, self._cfg.partial_max_tokens, notice),)

        notice("Merging all parts...", 1.0)
        merged = PART_SEPARATOR.join(p.strip() for p in partials)
        return await self._generate(
            self._cfg.merge_prompt.format(content=merged), self._cfg.max_tokens, notice
        )

    async def _generate(self, user: str, max_tokens: int, notice: NoticeFn) -> str:
        try:
            return await self._call(self._cfg.primary_model, user, max_tokens)
        except RateLimited as e:
            first_hint = e.retry_after
            logger.warning(
                "summarize.fallback model=%s retry_after=%s",
                self._cfg.fallback_model,
                first_hint,
            )
            notice(
                f"Primary model is rate limited (429), switching to fallback model "
                f"{self._cfg.fallback_model}... (expected recovery: {first_hint or GENERIC_WAIT})",
                None,
            )

        try:
            return await self._call(self._cfg.fallback_model, user, max_tokens)
        except RateLimited as e:
            logger.error("summarize.quota.exhausted")
            raise QuotaExhausted(e.retry_after or first_hint)

    async def _call(self, model: str, user: str, max_tokens: int) -> str:
        return await self._llm.complete(
            system=self._cfg.system_prompt,
            user=user,
            model=model,
            temperature=self._cfg.temperature,
            max_tokens=max_tokens,
        )

