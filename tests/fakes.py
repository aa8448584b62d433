from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from songrank.core.context import RequestContext
from songrank.core.exceptions import DuplicateSong
from songrank.core.policy import song_policy
from songrank.models import Song, SongStatus, utcnow
from songrank.repositories.songs import TOP_RANK_SIZE, ensure_valid_status
from songrank.schemas.songs import VideoMetadata
from songrank.services.youtube_service import InvalidUrl, VideoMetadataResolver

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def video_id(n: int) -> str:
    return f"vid{n:08d}"


def make_song(
    n: int,
    views: int = 0,
    status: str = SongStatus.APPROVED.value,
    **overrides: Any,
) -> Song:
    youtube_id = overrides.pop("youtube_id", video_id(n))
    fields = dict(
        title=f"Song {n}",
        artist="Tião Carreiro & Pardinho",
        youtube_id=youtube_id,
        youtube_url=f"https://www.youtube.com/watch?v={youtube_id}",
        thumbnail=f"https://img.youtube.com/vi/{youtube_id}/hqdefault.jpg",
        views=views,
        status=status,
        created_at=BASE_TIME + timedelta(minutes=n),
    )
    fields.update(overrides)
    return Song(**fields)


class FakeResolver:
    """Resolver double: parses the id like the real one, never touches the network."""

    def __init__(self, views: Optional[Dict[str, int]] = None):
        self.views = views or {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self._parser = VideoMetadataResolver(http=object())

    def fail_with(self, youtube_id: str, error: Exception) -> None:
        self.failures[youtube_id] = error

    def resolve(self, url: str) -> VideoMetadata:
        self.calls.append(url)
        youtube_id = self._parser.extract_video_id(url)
        if not youtube_id:
            raise InvalidUrl("Invalid YouTube URL")
        if youtube_id in self.failures:
            raise self.failures[youtube_id]
        return VideoMetadata(
            video_id=youtube_id,
            title=f"Title {youtube_id}",
            views=self.views.get(youtube_id, 1000),
            thumbnail=self._parser.thumbnail_url(youtube_id),
        )


class InMemorySongsRepository:
    """Dict-backed ``SongStore`` with the same semantics as the SQL repository."""

    def __init__(self, songs: Optional[List[Song]] = None):
        self.rows: Dict[int, Song] = {}
        self._next_id = 1
        self.commits = 0
        for song in songs or []:
            self.create(song)

    def get_by_id(self, song_id: int, include_deleted: bool = False) -> Optional[Song]:
        song = self.rows.get(song_id)
        if song and song.is_deleted and not include_deleted:
            return None
        return song

    def get_by_youtube_id(self, youtube_id: str, include_deleted: bool = False) -> Optional[Song]:
        for song in self.rows.values():
            if song.youtube_id == youtube_id and (include_deleted or not song.is_deleted):
                return song
        return None

    def find_top(self, limit: int = TOP_RANK_SIZE) -> List[Song]:
        return self._ranked()[:limit]

    def find_remaining(self, page: int, per_page: int):
        ranked = self._ranked()[TOP_RANK_SIZE:]
        start = (page - 1) * per_page
        return ranked[start:start + per_page], len(ranked)

    def find_by_status(self, status: str, page: int, per_page: int):
        ensure_valid_status(status)
        return self._recent(page, per_page, status)

    def find_all(self, ctx: RequestContext, status: Optional[str], page: int, per_page: int):
        if not song_policy.can_moderate(ctx):
            status = SongStatus.APPROVED.value
        if status is not None:
            ensure_valid_status(status)
        return self._recent(page, per_page, status)

    def count_by_status(self) -> Dict[str, int]:
        counts = {status: 0 for status in SongStatus.values()}
        for song in self._active():
            counts[song.status] += 1
        return counts

    def create(self, song: Song) -> Song:
        if self.get_by_youtube_id(song.youtube_id, include_deleted=True):
            raise DuplicateSong(f"A song with YouTube id '{song.youtube_id}' already exists")
        song.id = self._next_id
        self._next_id += 1
        song.created_at = song.created_at or utcnow()
        song.updated_at = song.created_at
        self.rows[song.id] = song
        return song

    def update(self, song: Song, changes: Dict[str, Any]) -> Song:
        new_id = changes.get("youtube_id")
        if new_id and new_id != song.youtube_id:
            other = self.get_by_youtube_id(new_id, include_deleted=True)
            if other and other.id != song.id:
                raise DuplicateSong(f"A song with YouTube id '{new_id}' already exists")
        for field, value in changes.items():
            setattr(song, field, value)
        song.updated_at = utcnow()
        return song

    def soft_delete(self, song: Song) -> Song:
        song.deleted_at = utcnow()
        song.updated_at = song.deleted_at
        return song

    def commit(self) -> None:
        self.commits += 1

    def _active(self) -> List[Song]:
        return [s for s in self.rows.values() if not s.is_deleted]

    def _ranked(self) -> List[Song]:
        approved = [s for s in self._active() if s.status == SongStatus.APPROVED.value]
        return sorted(approved, key=lambda s: (-s.views, s.id))

    def _recent(self, page: int, per_page: int, status: Optional[str]):
        songs = [s for s in self._active() if status is None or s.status == status]
        songs.sort(key=lambda s: (s.created_at, s.id), reverse=True)
        start = (page - 1) * per_page
        return songs[start:start + per_page], len(songs)
