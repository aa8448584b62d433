import logging
from typing import Optional
from songrank.core.config import settings
from songrank.core.context import RequestContext
from songrank.core.exceptions import DuplicateSong, InvalidSubmission, NotFound
from songrank.core.policy import SongPolicy, song_policy
from songrank.models import Song, SongStatus
from songrank.repositories.songs import SongStore
from songrank.schemas.songs import SongCreate, SongUpdate, VideoMetadata
from songrank.services.youtube_service import VideoMetadataResolver, VideoResolutionError

logger = logging.getLogger(__name__)


class SongModerationService:
    """
    Suggest -> approve/reject -> edit -> delete workflow for songs.

    Any status can move to any other through an admin action; suggestions
    always start as ``pending`` and admin-created songs as ``approved``.
    Metadata is resolved before touching the database so no transaction
    stays open across the YouTube fetch.
    """

    def __init__(
        self,
        songs: SongStore,
        resolver: VideoMetadataResolver,
        policy: SongPolicy = song_policy,
    ):
        self.songs = songs
        self.resolver = resolver
        self.policy = policy

    def suggest(self, ctx: RequestContext, youtube_url: str) -> Song:
        logger.info(f"🎤 Song suggestion from {ctx.describe()}: {youtube_url}")

        metadata = self._resolve(youtube_url)
        self._ensure_unique(metadata.video_id)

        song = self.songs.create(Song(
            title=metadata.title,
            artist=settings.DEFAULT_ARTIST,
            views=metadata.views,
            youtube_id=metadata.video_id,
            youtube_url=youtube_url,
            thumbnail=metadata.thumbnail,
            status=SongStatus.PENDING.value,
        ))

        logger.info(f"✅ Song {song.id} suggested ('{song.title}', youtube_id={song.youtube_id})")
        return song

    def create_direct(self, ctx: RequestContext, data: SongCreate) -> Song:
        self.policy.authorize_create_direct(ctx)
        logger.info(f"👑 Admin {ctx.describe()} creating song from {data.youtube_url}")

        metadata = self._resolve(data.youtube_url)
        self._ensure_unique(metadata.video_id)

        song = self.songs.create(Song(
            title=data.title or metadata.title,
            artist=data.artist or settings.DEFAULT_ARTIST,
            views=metadata.views,
            youtube_id=metadata.video_id,
            youtube_url=data.youtube_url,
            thumbnail=metadata.thumbnail,
            status=SongStatus.APPROVED.value,
        ))

        logger.info(f"✅ Song {song.id} created and auto-approved by {ctx.describe()}")
        return song

    def approve(self, ctx: RequestContext, song_id: int) -> Song:
        self.policy.authorize_moderation(ctx)
        song = self._get(song_id)

        if song.status == SongStatus.APPROVED.value:
            logger.info(f"Song {song_id} already approved, nothing to do")
            return song

        previous = song.status
        song = self.songs.update(song, {
            "status": SongStatus.APPROVED.value,
            "rejection_reason": None,
        })
        logger.info(f"✅ Song {song_id} approved by {ctx.describe()} ({previous} -> approved)")
        return song

    def reject(self, ctx: RequestContext, song_id: int, reason: Optional[str] = None) -> Song:
        self.policy.authorize_moderation(ctx)
        song = self._get(song_id)

        previous = song.status
        song = self.songs.update(song, {
            "status": SongStatus.REJECTED.value,
            "rejection_reason": reason,
        })
        logger.info(
            f"❌ Song {song_id} rejected by {ctx.describe()} "
            f"({previous} -> rejected), reason: {reason or 'not specified'}"
        )
        return song

    def edit(self, ctx: RequestContext, song_id: int, data: SongUpdate) -> Song:
        """
        Partial update. A changed ``youtube_url`` re-resolves the metadata and
        replaces youtube_id/views/thumbnail together with the other fields; if
        resolution fails nothing is written.
        """
        self.policy.authorize_moderation(ctx)
        song = self._get(song_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "status" in changes:
            changes["status"] = SongStatus(changes["status"]).value
            if changes["status"] != SongStatus.REJECTED.value:
                changes["rejection_reason"] = None

        new_url = changes.pop("youtube_url", None)
        if new_url is not None and new_url != song.youtube_url:
            current_youtube_id = song.youtube_id
            # Close the read transaction before the external call
            self.songs.commit()
            metadata = self._resolve(new_url)
            if metadata.video_id != current_youtube_id:
                self._ensure_unique(metadata.video_id)
            changes.update(
                youtube_url=new_url,
                youtube_id=metadata.video_id,
                views=metadata.views,
                thumbnail=metadata.thumbnail,
            )
            logger.info(
                f"🔄 Song {song_id} YouTube data refreshed "
                f"(youtube_id={metadata.video_id}, views={metadata.views})"
            )

        if not changes:
            return song

        song = self.songs.update(song, changes)
        logger.info(f"✅ Song {song_id} edited by {ctx.describe()}: {sorted(changes)}")
        return song

    def remove(self, ctx: RequestContext, song_id: int) -> Song:
        """Soft delete. Deleting an already deleted song is a no-op."""
        self.policy.authorize_moderation(ctx)

        song = self.songs.get_by_id(song_id, include_deleted=True)
        if not song:
            raise NotFound(f"Song {song_id} not found")

        if song.is_deleted:
            logger.info(f"Song {song_id} already deleted, nothing to do")
            return song

        song = self.songs.soft_delete(song)
        logger.info(f"🗑️ Song {song_id} ('{song.title}') deleted by {ctx.describe()}")
        return song

    # Helpers

    def _resolve(self, url: str) -> VideoMetadata:
        try:
            return self.resolver.resolve(url)
        except VideoResolutionError as e:
            logger.warning(f"YouTube resolution failed for {url}: {e.message}")
            raise InvalidSubmission(f"Failed to process YouTube URL: {e.message}") from e

    def _ensure_unique(self, youtube_id: str) -> None:
        """Best-effort pre-check; the unique index on youtube_id has the final word."""
        existing = self.songs.get_by_youtube_id(youtube_id, include_deleted=True)
        if not existing:
            return
        logger.warning(f"Duplicate YouTube id {youtube_id} (song {existing.id})")
        if existing.is_deleted:
            raise DuplicateSong("This song was previously removed by an administrator")
        raise DuplicateSong()

    def _get(self, song_id: int) -> Song:
        song = self.songs.get_by_id(song_id)
        if not song:
            raise NotFound(f"Song {song_id} not found")
        return song
