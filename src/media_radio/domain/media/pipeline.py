"""Acquisition pipeline: URL -> metadata, cached audio, chunks, registered assets.

Every step is idempotent, so a failed request can be retried by calling
acquire() again. Concurrent requests for the same track share one run.
"""

import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Optional

from loguru import logger

from media_radio.core.config import AcquisitionConfig, PlaybackConfig

from .assets import THUMBNAIL_ASSET_PREFIX, AssetPublisher
from .exceptions import ChunkingError, UnsupportedInputError
from .identity import detect_source_kind, normalize_url, resolve_track_id
from .index import SongIndex
from .models import LibraryEntry, MediaInfo, TrackMetadata
from .tools import (
    AudioDownloader,
    AudioSplitter,
    ImageConverter,
    MetadataFetcher,
    ThumbnailFetcher,
)


class AcquisitionPipeline:
    """Coalescing, asynchronous track acquisition.

    Args:
        storage_dir: Directory for cached full-length audio
        thumbs_dir: Directory for PNG thumbnails
        index: Bookkeeping for already-chunked tracks
        publisher: Chunk file naming and asset registration
        metadata_fetcher, downloader, splitter: Required external tools
        thumbnail_fetcher, image_converter: Optional; without them thumbnails
            are skipped
        acquisition: Batch sizes, worker count and audio extension
        playback: Source of the single chunk duration setting
        executor: Worker pool; one is created when omitted
    """

    def __init__(
        self,
        storage_dir: Path,
        thumbs_dir: Path,
        index: SongIndex,
        publisher: AssetPublisher,
        metadata_fetcher: MetadataFetcher,
        downloader: AudioDownloader,
        splitter: AudioSplitter,
        thumbnail_fetcher: Optional[ThumbnailFetcher] = None,
        image_converter: Optional[ImageConverter] = None,
        acquisition: Optional[AcquisitionConfig] = None,
        playback: Optional[PlaybackConfig] = None,
        executor: Optional[Executor] = None,
    ):
        self.storage_dir = storage_dir
        self.thumbs_dir = thumbs_dir
        self.index = index
        self.publisher = publisher
        self.metadata_fetcher = metadata_fetcher
        self.downloader = downloader
        self.splitter = splitter
        self.thumbnail_fetcher = thumbnail_fetcher
        self.image_converter = image_converter
        self.acquisition = acquisition or AcquisitionConfig()
        self.playback = playback or PlaybackConfig()

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.acquisition.workers, thread_name_prefix="acquire"
        )
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ paths

    def audio_path(self, track_id: str) -> Path:
        return self.storage_dir / f"{track_id}.{self.acquisition.audio_extension}"

    def thumbnail_path(self, track_id: str) -> Path:
        return self.thumbs_dir / f"{track_id}.png"

    def count_chunks(self, track_id: str) -> int:
        return self.publisher.count_chunks(track_id)

    def is_in_flight(self, track_id: str) -> bool:
        with self._lock:
            return track_id in self._in_flight

    # ------------------------------------------------------------------ acquire

    def acquire(self, source_url: str) -> "Future[MediaInfo]":
        """Start (or join) acquisition for source_url.

        Never raises: every failure, including unsupported input, is delivered
        through the returned future.
        """
        try:
            track_id = resolve_track_id(source_url)
        except UnsupportedInputError as e:
            failed: Future = Future()
            failed.set_exception(e)
            return failed

        url = normalize_url(source_url)

        with self._lock:
            future = self._in_flight.get(track_id)
            if future is not None:
                logger.debug(f"Joining in-flight acquisition for {track_id}")
                return future
            future = self._executor.submit(self._run, url, track_id)
            self._in_flight[track_id] = future

        # Attached outside the lock: an already-finished future runs it inline
        future.add_done_callback(partial(self._release, track_id))
        return future

    def _release(self, track_id: str, future: Future) -> None:
        with self._lock:
            if self._in_flight.get(track_id) is future:
                del self._in_flight[track_id]

        error = future.exception() if not future.cancelled() else None
        if error is not None:
            logger.error(f"Acquisition failed for {track_id}: {error}")

    def _run(self, url: str, track_id: str) -> MediaInfo:
        logger.info(f"Processing media request: {url} -> {track_id}")

        metadata = self.metadata_fetcher.fetch(url)
        chunk_count = self._ensure_chunks(url, track_id, metadata)
        self._register_chunks(track_id, chunk_count)
        thumbnail_ref = self._ensure_thumbnail(track_id, metadata.thumbnail_url)

        info = MediaInfo(
            track_id=track_id,
            source_url=url,
            title=metadata.title,
            artist=metadata.artist,
            thumbnail_url=metadata.thumbnail_url,
            duration_seconds=metadata.duration_seconds,
            chunk_count=chunk_count,
            thumbnail_asset_ref=thumbnail_ref,
        )
        logger.info(f"Media ready: {info.title} ({track_id}, {chunk_count} chunks)")
        return info

    # ------------------------------------------------------------------ steps

    def _ensure_chunks(
        self, url: str, track_id: str, metadata: TrackMetadata
    ) -> int:
        chunk_duration_ms = self.playback.chunk_duration_ms
        entry = self.index.get(track_id)
        if entry is not None and entry.is_stale(chunk_duration_ms):
            logger.info(
                f"Re-chunking {track_id}: index version {entry.version}, "
                f"chunk duration {entry.chunk_duration_ms}ms"
            )
            self.publisher.remove_track(track_id, entry.chunk_count)
            self.index.remove(track_id)

        chunk_count = self.publisher.count_chunks(track_id)
        if chunk_count > 0:
            logger.debug(f"Reusing {chunk_count} existing chunks for {track_id}")
        else:
            audio = self.audio_path(track_id)
            if not audio.exists():
                audio = self.downloader.download(url, self.storage_dir / track_id)

            self.splitter.split(
                audio,
                self.publisher.chunk_pattern(track_id),
                self.playback.segment_seconds,
            )
            chunk_count = self.publisher.count_chunks(track_id)
            if chunk_count == 0:
                raise ChunkingError(f"Splitter produced no chunks for {track_id}")
            logger.info(f"Split {track_id} into {chunk_count} chunks")

        self.index.put(
            LibraryEntry(
                track_id=track_id,
                source_kind=detect_source_kind(url),
                chunk_count=chunk_count,
                chunk_duration_ms=chunk_duration_ms,
                source_url=url,
                title=metadata.title,
                artist=metadata.artist,
                duration_seconds=metadata.duration_seconds,
            )
        )
        return chunk_count

    def _register_chunks(self, track_id: str, chunk_count: int) -> None:
        initial = min(chunk_count, self.acquisition.initial_asset_batch)
        published = self.publisher.publish_range(track_id, 0, initial)
        logger.debug(f"Registered {published} initial chunk assets for {track_id}")

        if initial >= chunk_count:
            return
        if self.acquisition.wait_for_full_assets:
            self._register_remaining(track_id, initial, chunk_count)
        else:
            try:
                self._executor.submit(
                    self._register_remaining, track_id, initial, chunk_count
                )
            except RuntimeError as e:
                logger.warning(
                    f"Could not schedule background registration for {track_id} "
                    f"(chunks {initial}-{chunk_count - 1}): {e}"
                )

    def _register_remaining(self, track_id: str, start: int, chunk_count: int) -> None:
        """Register chunks [start, chunk_count) in delayed batches."""
        batch = self.acquisition.background_asset_batch
        delay = self.acquisition.background_asset_delay_ms / 1000.0
        for batch_start in range(start, chunk_count, batch):
            if delay > 0:
                time.sleep(delay)
            batch_end = min(chunk_count, batch_start + batch)
            self.publisher.publish_range(track_id, batch_start, batch_end)
        logger.debug(f"Registered all {chunk_count} chunk assets for {track_id}")

    def _ensure_thumbnail(self, track_id: str, thumbnail_url: str) -> str:
        """Best-effort thumbnail registration; returns "" on any failure."""
        asset_ref = f"{THUMBNAIL_ASSET_PREFIX}{track_id}.png"
        png = self.thumbnail_path(track_id)
        try:
            if not png.exists():
                if not thumbnail_url or self.thumbnail_fetcher is None:
                    return ""
                downloaded = self.thumbnail_fetcher.fetch(
                    thumbnail_url, self.thumbs_dir / f"{track_id}_src"
                )
                if downloaded.suffix.lower() == ".png":
                    downloaded.replace(png)
                elif self.image_converter is not None:
                    self.image_converter.convert(downloaded, png)
                    downloaded.unlink(missing_ok=True)
                else:
                    downloaded.unlink(missing_ok=True)
                    return ""
            self.publisher.publish_file(asset_ref, png)
            return asset_ref
        except Exception as e:
            logger.warning(f"Thumbnail unavailable for {track_id}: {e}")
            return ""

    # ------------------------------------------------------------------ cleanup

    def cleanup_track_assets(self, track_id: str) -> int:
        """Drop a track's chunk files, chunk assets and index entry.

        The cached full-length audio is kept, so the next acquire only
        re-splits.

        Returns:
            Number of chunk files deleted
        """
        entry = self.index.get(track_id)
        chunk_count = entry.chunk_count if entry else 0
        deleted = self.publisher.remove_track(track_id, chunk_count)
        self.index.remove(track_id)
        return deleted

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
