"""
Radio service: composition root and glue between acquisition, playback and
the per-owner song library.

Every collaborator is built once in RadioService.build() and handed to the
components that need it.
"""

from concurrent.futures import Executor, Future
from functools import partial
from typing import Callable, Optional

from loguru import logger

from media_radio.core.config import Config
from media_radio.domain.library import (
    STATUS_DOWNLOADING,
    STATUS_PLAYING,
    STATUS_READY,
    SongLibrary,
)
from media_radio.domain.media import (
    AcquisitionPipeline,
    AssetPublisher,
    AssetRegistry,
    InMemoryAssetRegistry,
    InMemorySoundEventRegistry,
    MediaInfo,
    SongIndex,
    SoundEventRegistry,
    normalize_url,
    resolve_track_id,
)
from media_radio.domain.media.tools import (
    FfmpegImageConverter,
    FfmpegSplitter,
    HttpThumbnailFetcher,
    YtDlpAudioDownloader,
    YtDlpMetadataFetcher,
)
from media_radio.domain.playback import (
    BlockPosition,
    ListenerRef,
    LoggingSoundEmitter,
    PlaybackScheduler,
    PlaybackSession,
    PlaybackTarget,
    SoundEmitter,
    ThreadingTimerService,
    TimerService,
    create_world_executor,
)


class RadioService:
    """Request, play and delete media on behalf of owners and targets."""

    def __init__(
        self,
        config: Config,
        pipeline: AcquisitionPipeline,
        scheduler: PlaybackScheduler,
        library: SongLibrary,
        timers: Optional[TimerService] = None,
        world_executor: Optional[Executor] = None,
    ):
        self.config = config
        self.pipeline = pipeline
        self.scheduler = scheduler
        self.library = library
        self._timers = timers
        self._world_executor = world_executor
        if scheduler.on_session_ended is None:
            scheduler.on_session_ended = self._on_session_ended

    @classmethod
    def build(
        cls,
        config: Config,
        emitter: Optional[SoundEmitter] = None,
        assets: Optional[AssetRegistry] = None,
        sound_events: Optional[SoundEventRegistry] = None,
        eligibility: Optional[Callable[[ListenerRef], bool]] = None,
    ) -> "RadioService":
        """Wire the production collaborators from configuration."""
        data_dir = config.data_dir
        songs_dir = data_dir / "songs"
        acquisition = config.acquisition
        ffmpeg = acquisition.ffmpeg_path

        sound_events = sound_events or InMemorySoundEventRegistry()
        publisher = AssetPublisher(
            assets=assets or InMemoryAssetRegistry(),
            sound_events=sound_events,
            chunk_dir=songs_dir / "chunks",
            audio_extension=acquisition.audio_extension,
            sound_config=config.sound_events,
        )
        pipeline = AcquisitionPipeline(
            storage_dir=songs_dir,
            thumbs_dir=data_dir / "thumbs",
            index=SongIndex(songs_dir / "song_index.json"),
            publisher=publisher,
            metadata_fetcher=YtDlpMetadataFetcher(),
            downloader=YtDlpAudioDownloader(
                codec=acquisition.audio_codec,
                extension=acquisition.audio_extension,
                ffmpeg_location=ffmpeg if "/" in ffmpeg else None,
            ),
            splitter=FfmpegSplitter(ffmpeg),
            thumbnail_fetcher=HttpThumbnailFetcher(
                timeout=acquisition.thumbnail_timeout_seconds
            ),
            image_converter=FfmpegImageConverter(ffmpeg),
            acquisition=acquisition,
            playback=config.playback,
        )

        timers = ThreadingTimerService()
        world_executor = create_world_executor()
        scheduler = PlaybackScheduler(
            sound_events=sound_events,
            emitter=emitter or LoggingSoundEmitter(),
            timers=timers,
            world_executor=world_executor,
            config=config.playback,
            sound_config=config.sound_events,
            eligibility=eligibility,
        )
        library = SongLibrary(data_dir / "songs.json")
        return cls(config, pipeline, scheduler, library, timers, world_executor)

    # ------------------------------------------------------------------ requests

    def request(self, owner_id: str, source_url: str) -> "Future[MediaInfo]":
        """Acquire source_url for owner_id, tracking it in the owner's library.

        The library entry is marked Downloading up front, set to Ready on
        success, and rolled back on failure unless it existed before.
        """
        if not source_url or not source_url.strip():
            return self.pipeline.acquire(source_url)

        url = normalize_url(source_url)
        existed = self.library.find(owner_id, url) is not None
        self.library.upsert(owner_id, url, status=STATUS_DOWNLOADING)

        future = self.pipeline.acquire(url)
        future.add_done_callback(partial(self._on_acquired, owner_id, url, existed))
        return future

    def _on_acquired(
        self, owner_id: str, url: str, existed: bool, future: "Future[MediaInfo]"
    ) -> None:
        error = future.exception()
        if error is not None:
            if existed:
                self.library.set_status(owner_id, url, STATUS_READY)
            else:
                self.library.remove(owner_id, url)
                logger.warning(f"Rolled back library entry for {owner_id}: {url}")
            return

        media = future.result()
        self.library.upsert(
            owner_id,
            url,
            title=media.title,
            artist=media.artist,
            thumbnail_url=media.thumbnail_url,
            track_id=media.track_id,
            thumbnail_asset_ref=media.thumbnail_asset_ref,
            duration_seconds=media.duration_seconds,
            status=STATUS_READY,
        )

    def play_for_listener(
        self, listener: ListenerRef, source_url: str
    ) -> "Future[Optional[PlaybackSession]]":
        """Acquire source_url into the listener's library, then play it to them."""
        acquisition = self.request(listener.listener_id, source_url)
        return self._play_when_ready(listener, acquisition)

    def play_at(
        self, position: BlockPosition, source_url: str
    ) -> "Future[Optional[PlaybackSession]]":
        """Acquire source_url, then play it from a fixed position."""
        return self._play_when_ready(position, self.pipeline.acquire(source_url))

    def _play_when_ready(
        self, target: PlaybackTarget, acquisition: "Future[MediaInfo]"
    ) -> "Future[Optional[PlaybackSession]]":
        result: Future = Future()
        acquisition.add_done_callback(partial(self._start_playback, target, result))
        return result

    def _start_playback(
        self,
        target: PlaybackTarget,
        result: "Future[Optional[PlaybackSession]]",
        acquisition: "Future[MediaInfo]",
    ) -> None:
        error = acquisition.exception()
        if error is not None:
            result.set_exception(error)
            return
        media = acquisition.result()
        try:
            session = self.scheduler.play(target, media)
        except Exception as e:
            result.set_exception(e)
            return
        if session is not None and isinstance(target, ListenerRef):
            self.library.set_status(
                target.listener_id, media.source_url, STATUS_PLAYING
            )
        result.set_result(session)

    def delete_media(self, owner_id: str, source_url: str) -> bool:
        """Remove url from owner's library; drop its assets once nobody saves it.

        Returns:
            True if the owner's entry existed
        """
        url = normalize_url(source_url)
        removed = self.library.remove(owner_id, url)
        if self.library.is_referenced(url):
            return removed

        track_id = resolve_track_id(url)
        self.scheduler.stop_all_for_track(track_id)
        if not self.pipeline.is_in_flight(track_id):
            self.pipeline.cleanup_track_assets(track_id)
        logger.info(f"Deleted media {track_id} ({url})")
        return removed

    # ------------------------------------------------------------------ endings

    def _on_session_ended(
        self, session: PlaybackSession, reason: Optional[Exception]
    ) -> None:
        if reason is not None:
            logger.warning(f"Playback of {session.track_id} ended early: {reason}")

        target = session.target
        if isinstance(target, ListenerRef):
            current = self.scheduler.get_session(target)
            if current is None or current.source_url != session.source_url:
                self.library.set_status(
                    target.listener_id, session.source_url, STATUS_READY
                )

        if (
            self.config.playback.cleanup_idle_tracks
            and not self.scheduler.is_track_active(session.track_id)
            and not self.pipeline.is_in_flight(session.track_id)
        ):
            self.pipeline.cleanup_track_assets(session.track_id)

    def shutdown(self) -> None:
        self.scheduler.shutdown()
        if self._timers is not None:
            self._timers.shutdown()
        if self._world_executor is not None:
            self._world_executor.shutdown(wait=True)
        self.pipeline.shutdown(wait=False)
        logger.info("Radio service shut down")
