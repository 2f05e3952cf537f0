"""Shared fixtures for the media_radio test suite."""

from pathlib import Path

import pytest

from fakes import (
    FakeClock,
    FakeDownloader,
    FakeMetadataFetcher,
    FakeSplitter,
    InlineExecutor,
    ManualTimerService,
    RecordingEmitter,
)
from media_radio.core.config import AcquisitionConfig, Config, PlaybackConfig
from media_radio.domain.library import SongLibrary
from media_radio.domain.media import (
    AcquisitionPipeline,
    AssetPublisher,
    InMemoryAssetRegistry,
    InMemorySoundEventRegistry,
    SongIndex,
)
from media_radio.domain.playback import PlaybackScheduler
from media_radio.service import RadioService


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(start=1_000_000)


@pytest.fixture
def timers(clock: FakeClock) -> ManualTimerService:
    return ManualTimerService(clock)


@pytest.fixture
def inline_executor() -> InlineExecutor:
    return InlineExecutor()


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def assets() -> InMemoryAssetRegistry:
    return InMemoryAssetRegistry()


@pytest.fixture
def sound_events() -> InMemorySoundEventRegistry:
    return InMemorySoundEventRegistry()


@pytest.fixture
def publisher(
    tmp_path: Path,
    assets: InMemoryAssetRegistry,
    sound_events: InMemorySoundEventRegistry,
) -> AssetPublisher:
    return AssetPublisher(assets, sound_events, tmp_path / "songs" / "chunks")


@pytest.fixture
def metadata_fetcher() -> FakeMetadataFetcher:
    return FakeMetadataFetcher()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def splitter() -> FakeSplitter:
    return FakeSplitter()


@pytest.fixture
def make_pipeline(
    tmp_path: Path,
    publisher: AssetPublisher,
    metadata_fetcher: FakeMetadataFetcher,
    downloader: FakeDownloader,
    splitter: FakeSplitter,
    inline_executor: InlineExecutor,
):
    """Factory building an AcquisitionPipeline over the fake tools.

    Keyword overrides replace any constructor argument.
    """
    created: list[AcquisitionPipeline] = []

    def factory(**overrides) -> AcquisitionPipeline:
        kwargs = dict(
            storage_dir=tmp_path / "songs",
            thumbs_dir=tmp_path / "thumbs",
            index=SongIndex(tmp_path / "songs" / "song_index.json"),
            publisher=publisher,
            metadata_fetcher=metadata_fetcher,
            downloader=downloader,
            splitter=splitter,
            acquisition=AcquisitionConfig(background_asset_delay_ms=0),
            playback=PlaybackConfig(),
            executor=inline_executor,
        )
        kwargs.update(overrides)
        pipeline = AcquisitionPipeline(**kwargs)
        created.append(pipeline)
        return pipeline

    yield factory

    for pipeline in created:
        pipeline.shutdown(wait=True)


@pytest.fixture
def scheduler_config() -> PlaybackConfig:
    return PlaybackConfig()


@pytest.fixture
def service(
    tmp_path: Path,
    make_pipeline,
    sound_events: InMemorySoundEventRegistry,
    emitter: RecordingEmitter,
    timers: ManualTimerService,
    inline_executor: InlineExecutor,
    clock: FakeClock,
    scheduler_config: PlaybackConfig,
) -> RadioService:
    """RadioService over fake tools, manual timers and an inline world executor."""
    config = Config()
    config.playback = scheduler_config
    scheduler = PlaybackScheduler(
        sound_events,
        emitter,
        timers,
        inline_executor,
        config=scheduler_config,
        clock=clock,
    )
    return RadioService(
        config,
        make_pipeline(playback=scheduler_config),
        scheduler,
        SongLibrary(tmp_path / "songs.json"),
    )
