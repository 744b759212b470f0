import asyncio

import pytest
from pydantic import SecretStr

from core import segmenter
from core.pipeline import JobOrchestrator
from core.streaming import EventChannel
from core.workspace import workspace_path
from model.job import Job
from service import podcast_service
from service.podcast_service import PodcastService
from util.enums import ErrorMessage, Stage
from util.errors import AuthInvalid, ProbeFailed, RateLimited, ResolveFailed

EPISODE_URL = "https://www.xiaoyuzhoufm.com/episode/abc123"


class RecordingChannel(EventChannel):
    """Keeps every event and notes whether the job directory existed at each send."""

    def __init__(self, root, job_id):
        super().__init__()
        self.events = []
        self.dir_existed = []
        self._dir = workspace_path(root, job_id)

    def send(self, event):
        self.events.append(event)
        self.dir_existed.append(self._dir.exists())
        super().send(event)

    @property
    def stages(self):
        return [e.stage for e in self.events]

    @property
    def terminal(self):
        return self.events[-1]


def _job():
    return Job(source_url=EPISODE_URL, api_key=SecretStr("gsk_user"))


@pytest.fixture
def build(tmp_path, fake_pipeline_parts, summarizer_config, instant_sleep):
    def _build(provider, **overrides):
        keys = []

        def providers(key):
            keys.append(key)
            return provider

        kwargs = dict(
            fake_pipeline_parts,
            providers=providers,
            summarizer_config=summarizer_config,
            temp_root=tmp_path,
            job_timeout=5,
            heartbeat_seconds=60,
            transcribe_options={"sleep": instant_sleep},
        )
        kwargs.update(overrides)
        orchestrator = JobOrchestrator(**kwargs)
        orchestrator.keys = keys
        return orchestrator

    return _build


async def _run(orchestrator, tmp_path):
    job = _job()
    channel = RecordingChannel(tmp_path, job.id)
    await orchestrator.run(job, channel)
    return job, channel


@pytest.mark.asyncio
async def test_happy_path_streams_stages_in_order(build, provider_factory, tmp_path):
    provider = provider_factory(completions=["# Episode 1\n\n- alpha\n- beta"])
    orchestrator = build(provider)

    job, channel = await _run(orchestrator, tmp_path)

    order = [Stage.PARSING, Stage.DOWNLOADING, Stage.TRANSCRIBING, Stage.SUMMARIZING, Stage.DONE]
    seen = []
    for stage in channel.stages:
        if not seen or seen[-1] != stage:
            seen.append(stage)
    assert seen == order
    assert channel.stages.count(Stage.DONE) == 1

    progress = [e.progress for e in channel.events]
    assert progress == sorted(progress)
    assert progress[:2] == [1, 5]
    assert 85 in progress

    done = channel.terminal
    assert done.progress == 100
    assert done.data.title == "Episode 1"
    assert done.data.audioUrl == "https://media.example.com/ep1.m4a"
    assert done.data.transcript == "text of chunk000.m4a。\ntext of chunk001.m4a。\ntext of chunk002.m4a。"
    assert done.data.summary.startswith("# ")
    assert done.data.highlights == ["alpha", "beta"]
    assert done.data.category == "universal"

    assert orchestrator.keys == ["gsk_user"]
    assert job.stage == Stage.DONE
    assert channel.dir_existed[0] is True
    assert channel.dir_existed[-1] is False
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_transcription_progress_stays_in_its_band(build, provider_factory, tmp_path):
    _, channel = await _run(build(provider_factory()), tmp_path)

    transcribing = [e.progress for e in channel.events if e.stage == Stage.TRANSCRIBING]
    assert transcribing[0] == 30
    assert transcribing[-1] == 85
    assert all(30 <= p <= 85 for p in transcribing)


@pytest.mark.asyncio
async def test_resolve_failure_ends_with_single_error(build, provider_factory, tmp_path):
    async def resolve(url):
        raise ResolveFailed()

    _, channel = await _run(build(provider_factory(), resolver=resolve), tmp_path)

    assert channel.stages.count(Stage.ERROR) == 1
    assert Stage.DONE not in channel.stages
    assert channel.terminal.error == ResolveFailed.default_message
    assert channel.terminal.progress is None
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_auth_failure_uses_the_standard_message(build, provider_factory, tmp_path):
    provider = provider_factory(transcripts=[AuthInvalid("provider said something else")])

    _, channel = await _run(build(provider), tmp_path)

    assert channel.terminal.stage == Stage.ERROR
    assert channel.terminal.error == ErrorMessage.INVALID_API_KEY.value.message
    assert len(provider.transcribed) == 1


@pytest.mark.asyncio
async def test_quota_exhaustion_fails_the_job(build, provider_factory, tmp_path):
    provider = provider_factory(
        completions=[RateLimited("a", retry_after="1m"), RateLimited("b", retry_after="9m")]
    )

    _, channel = await _run(build(provider), tmp_path)

    assert Stage.DONE not in channel.stages
    assert "9m" in channel.terminal.error
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_fallback_is_announced_once_and_job_completes(build, provider_factory, tmp_path):
    provider = provider_factory(completions=[RateLimited("busy", retry_after="30s"), "# Notes\n\n- a"])

    _, channel = await _run(build(provider), tmp_path)

    fallback = [e for e in channel.events if e.message and "small-model" in e.message]
    assert len(fallback) == 1
    assert fallback[0].stage == Stage.SUMMARIZING
    assert channel.terminal.stage == Stage.DONE


@pytest.mark.asyncio
async def test_empty_transcript_is_an_error(build, provider_factory, tmp_path):
    provider = provider_factory(transcripts=["  ", "\n", ""])

    _, channel = await _run(build(provider), tmp_path)

    assert channel.terminal.stage == Stage.ERROR
    assert provider.calls == []


@pytest.mark.asyncio
async def test_job_timeout_is_reported_and_cleaned_up(build, provider_factory, tmp_path):
    async def slow_fetch(audio_url, workdir):
        (workdir / "download_audio_temp").write_bytes(b"partial")
        await asyncio.sleep(10)

    _, channel = await _run(build(provider_factory(), fetcher=slow_fetch, job_timeout=0.05), tmp_path)

    assert channel.terminal.stage == Stage.ERROR
    assert "too long" in channel.terminal.error
    assert channel.dir_existed[-1] is False
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_unexpected_errors_become_error_events(build, provider_factory, tmp_path):
    async def segment(path, extension):
        raise RuntimeError("boom")

    _, channel = await _run(build(provider_factory(), segmenter=segment), tmp_path)

    assert channel.terminal.error == "boom"
    assert channel.stages.count(Stage.ERROR) == 1


@pytest.mark.asyncio
async def test_heartbeat_repeats_progress_while_summarizing(build, tmp_path):
    class SlowLLM:
        async def transcribe(self, path):
            return "text。"

        async def complete(self, **kwargs):
            await asyncio.sleep(0.08)
            return "# Notes\n\n- a"

    _, channel = await _run(build(SlowLLM(), heartbeat_seconds=0.02), tmp_path)

    beats = [e for e in channel.events if e.stage == Stage.SUMMARIZING and e.message is None]
    assert len(beats) >= 2
    assert {e.progress for e in beats} == {85}
    assert channel.terminal.stage == Stage.DONE


@pytest.mark.asyncio
async def test_detached_channel_still_runs_to_cleanup(build, provider_factory, tmp_path):
    job = _job()
    channel = RecordingChannel(tmp_path, job.id)
    channel.detach()

    await build(provider_factory()).run(job, channel)

    assert job.stage == Stage.DONE
    assert [e async for e in channel] == []
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_missing_ffprobe_ends_with_the_probe_message(build, provider_factory, tmp_path, monkeypatch):
    def probe(path):
        raise FileNotFoundError(2, "No such file or directory", "ffprobe")

    monkeypatch.setattr(segmenter.ffmpeg, "probe", probe)

    _, channel = await _run(build(provider_factory(), segmenter=segmenter.segment), tmp_path)

    assert channel.terminal.stage == Stage.ERROR
    assert channel.terminal.error == ProbeFailed.default_message
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_client_disconnect_leaves_the_job_running_to_cleanup(
    build, provider_factory, fake_pipeline_parts, tmp_path
):
    resolve = fake_pipeline_parts["resolver"]

    async def slow_resolve(url):
        await asyncio.sleep(0.05)
        return await resolve(url)

    service = PodcastService(
        build(provider_factory(), resolver=slow_resolve),
        supported_host="xiaoyuzhoufm.com",
        server_api_key="",
    )
    job = service.create_job(EPISODE_URL, "gsk_user")
    frames = service.stream_job(job)

    first = await frames.__anext__()
    await frames.aclose()

    assert first.startswith(b"data: ")
    orphans = list(podcast_service._orphaned)
    assert len(orphans) == 1
    await asyncio.wait_for(asyncio.gather(*orphans), timeout=5)

    assert job.stage == Stage.DONE
    assert list(tmp_path.iterdir()) == []
    assert not podcast_service._orphaned
