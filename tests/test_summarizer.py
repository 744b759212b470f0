import httpx
import pytest

from core.summarizer import PART_SEPARATOR, SummarizationEngine
from util.errors import (
    AuthInvalid,
    ProviderError,
    QuotaExhausted,
    RateLimited,
    SummarizationFailed,
)

SUMMARY = "# Episode title\n\n## The Context\n\n- first\n- second\n  - nested\n* third\n- fourth"


class _PartsThenMerge:
    """Returns numbered notes for every part call and SUMMARY for the merge call."""

    def __init__(self):
        self.calls = []

    async def complete(self, **kwargs):
        self.calls.append(kwargs)
        if kwargs["user"].startswith("MERGE"):
            return SUMMARY
        return f"notes {len(self.calls)}"


@pytest.mark.asyncio
async def test_short_transcript_is_summarized_in_one_call(provider_factory, summarizer_config, notices):
    llm = provider_factory(completions=[SUMMARY])
    engine = SummarizationEngine(llm, summarizer_config)

    result = await engine.summarize("short transcript。", notices)

    assert result.summary == SUMMARY
    assert result.highlights == ("first", "second", "third")
    assert result.category == "universal"
    assert len(llm.calls) == 1
    call = llm.calls[0]
    assert call["model"] == "big-model"
    assert call["system"] == "SYSTEM"
    assert call["user"].startswith("TRANSCRIPT:\n\n")
    assert call["max_tokens"] == summarizer_config.max_tokens
    assert notices.items == []


@pytest.mark.asyncio
async def test_rate_limited_primary_falls_back_once(provider_factory, summarizer_config, notices):
    llm = provider_factory(
        completions=[
            RateLimited("Please try again in 7m12.5s.", retry_after="7m12.5s"),
            SUMMARY,
        ]
    )
    engine = SummarizationEngine(llm, summarizer_config)

    result = await engine.summarize("short transcript。", notices)

    assert result.summary == SUMMARY
    assert [c["model"] for c in llm.calls] == ["big-model", "small-model"]
    assert len(notices.messages) == 1
    assert "small-model" in notices.messages[0]
    assert "7m12.5s" in notices.messages[0]


@pytest.mark.asyncio
async def test_fallback_notice_uses_placeholder_without_hint(provider_factory, summarizer_config, notices):
    llm = provider_factory(completions=[RateLimited("slow down"), SUMMARY])
    engine = SummarizationEngine(llm, summarizer_config)

    await engine.summarize("short transcript。", notices)

    assert "a while" in notices.messages[0]


@pytest.mark.asyncio
async def test_rate_limited_on_both_models_exhausts_quota(provider_factory, summarizer_config, notices):
    llm = provider_factory(
        completions=[RateLimited("x", retry_after="1m"), RateLimited("y", retry_after="2m")]
    )
    engine = SummarizationEngine(llm, summarizer_config)

    with pytest.raises(QuotaExhausted) as exc:
        await engine.summarize("short transcript。", notices)

    assert exc.value.retry_after == "2m"
    assert "2m" in exc.value.message
    assert len(notices.messages) == 1


@pytest.mark.asyncio
async def test_long_transcript_goes_through_parts_and_merge(summarizer_config, notices):
    transcript = "".join(f"第{i}句话的内容在这里。" for i in range(40))
    assert len(transcript) > summarizer_config.direct_max_chars
    llm = _PartsThenMerge()
    engine = SummarizationEngine(llm, summarizer_config)

    result = await engine.summarize(transcript, notices)

    assert result.summary == SUMMARY
    parts = [c["user"] for c in llm.calls[:-1]]
    assert len(parts) >= 2
    assert all(p.startswith("PART ") for p in parts)
    assert all(c["max_tokens"] == summarizer_config.partial_max_tokens for c in llm.calls[:-1])
    merge = llm.calls[-1]["user"]
    assert merge.startswith("MERGE")
    assert PART_SEPARATOR.join(f"notes {i}" for i in range(1, len(parts) + 1)) in merge

    assert "Long transcript" in notices.messages[0]
    assert notices.messages[-1].startswith("Merging")
    fractions = [f for _, f in notices.items if f is not None]
    assert fractions == sorted(fractions)
    assert fractions[-1] == 1.0


@pytest.mark.asyncio
async def test_fallback_applies_to_chunk_calls(provider_factory, summarizer_config, notices):
    transcript = "".join(f"第{i}句话的内容在这里。" for i in range(40))
    llm = provider_factory(completions=[RateLimited("busy")] + ["notes"] * 20)
    engine = SummarizationEngine(llm, summarizer_config)

    await engine.summarize(transcript, notices)

    assert llm.calls[0]["model"] == "big-model"
    assert llm.calls[1]["model"] == "small-model"
    assert llm.calls[2]["model"] == "big-model"
    assert sum("small-model" in m for m in notices.messages) == 1


@pytest.mark.asyncio
async def test_other_provider_errors_become_summarization_failed(provider_factory, summarizer_config):
    llm = provider_factory(completions=[ProviderError(500, "model overloaded")])
    engine = SummarizationEngine(llm, summarizer_config)

    with pytest.raises(SummarizationFailed) as exc:
        await engine.summarize("short transcript。")

    assert "model overloaded" in exc.value.message
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_transport_errors_become_summarization_failed(provider_factory, summarizer_config):
    llm = provider_factory(completions=[httpx.ConnectError("connection refused")])
    engine = SummarizationEngine(llm, summarizer_config)

    with pytest.raises(SummarizationFailed):
        await engine.summarize("short transcript。")


@pytest.mark.asyncio
async def test_auth_errors_propagate(provider_factory, summarizer_config):
    llm = provider_factory(completions=[AuthInvalid()])
    engine = SummarizationEngine(llm, summarizer_config)

    with pytest.raises(AuthInvalid):
        await engine.summarize("short transcript。")


@pytest.mark.asyncio
async def test_empty_output_is_a_failure(provider_factory, summarizer_config):
    llm = provider_factory(completions=["   "])
    engine = SummarizationEngine(llm, summarizer_config)

    with pytest.raises(SummarizationFailed):
        await engine.summarize("short transcript。")


@pytest.mark.asyncio
async def test_blank_trailing_chunk_is_not_sent(summarizer_config, notices):
    sentence = "字" * 79 + "。"
    transcript = sentence * 3 + "\n" * 5
    llm = _PartsThenMerge()
    engine = SummarizationEngine(llm, summarizer_config)

    await engine.summarize(transcript, notices)

    parts = [c["user"] for c in llm.calls[:-1]]
    assert len(parts) == 3
    assert all(p == f"PART 80\n{sentence}" for p in parts)
    assert "Analysing part 3/3..." in notices.messages
