from sqlmodel import select, Session, func
from sqlalchemy.exc import IntegrityError
from typing import Any, Dict, List, Optional, Protocol, Tuple
from songrank.core.config import settings
from songrank.core.context import RequestContext
from songrank.core.exceptions import DuplicateSong, InvalidStatusError
from songrank.core.policy import song_policy
from songrank.models import Song, SongStatus, utcnow

PageResult = Tuple[List[Song], int]

# Songs ranked inside the top list never show up in the remaining list
TOP_RANK_SIZE = settings.TOP_SONGS_LIMIT


def ensure_valid_status(status: str) -> str:
    if status not in SongStatus.values():
        raise InvalidStatusError(status, SongStatus.values())
    return status


class SongStore(Protocol):
    """Query/persistence operations the services rely on."""

    def get_by_id(self, song_id: int, include_deleted: bool = False) -> Optional[Song]: ...

    def get_by_youtube_id(self, youtube_id: str, include_deleted: bool = False) -> Optional[Song]: ...

    def find_top(self, limit: int = TOP_RANK_SIZE) -> List[Song]: ...

    def find_remaining(self, page: int, per_page: int) -> PageResult: ...

    def find_by_status(self, status: str, page: int, per_page: int) -> PageResult: ...

    def find_all(self, ctx: RequestContext, status: Optional[str], page: int, per_page: int) -> PageResult: ...

    def count_by_status(self) -> Dict[str, int]: ...

    def create(self, song: Song) -> Song: ...

    def update(self, song: Song, changes: Dict[str, Any]) -> Song: ...

    def soft_delete(self, song: Song) -> Song: ...

    def commit(self) -> None: ...


class SongsRepository:
    """SQL implementation of ``SongStore``. Soft-deleted rows are excluded unless asked for."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, song_id: int, include_deleted: bool = False) -> Optional[Song]:
        song = self.session.get(Song, song_id)
        if song and song.is_deleted and not include_deleted:
            return None
        return song

    def get_by_youtube_id(self, youtube_id: str, include_deleted: bool = False) -> Optional[Song]:
        statement = select(Song).where(Song.youtube_id == youtube_id)
        if not include_deleted:
            statement = statement.where(Song.deleted_at.is_(None))
        return self.session.exec(statement).first()

    def find_top(self, limit: int = TOP_RANK_SIZE) -> List[Song]:
        """Approved songs by views DESC (id ASC breaks ties)."""
        statement = self._ranked().limit(limit)
        return list(self.session.exec(statement).all())

    def find_remaining(self, page: int, per_page: int) -> PageResult:
        """Same ranking as ``find_top``, skipping the top entries, paginated."""
        offset = TOP_RANK_SIZE + (page - 1) * per_page
        statement = self._ranked().offset(offset).limit(per_page)
        items = list(self.session.exec(statement).all())
        approved = self._count(Song.status == SongStatus.APPROVED.value)
        return items, max(0, approved - TOP_RANK_SIZE)

    def find_by_status(self, status: str, page: int, per_page: int) -> PageResult:
        ensure_valid_status(status)
        return self._paginate_recent(page, per_page, Song.status == status)

    def find_all(
        self,
        ctx: RequestContext,
        status: Optional[str],
        page: int,
        per_page: int,
    ) -> PageResult:
        """
        Recent songs first. Callers without moderation rights only ever see
        approved songs, whatever filter they ask for.
        """
        if not song_policy.can_moderate(ctx):
            status = SongStatus.APPROVED.value
        if status is None:
            return self._paginate_recent(page, per_page)
        ensure_valid_status(status)
        return self._paginate_recent(page, per_page, Song.status == status)

    def count_by_status(self) -> Dict[str, int]:
        statement = (
            select(Song.status, func.count())
            .where(Song.deleted_at.is_(None))
            .group_by(Song.status)
        )
        counts = {status: 0 for status in SongStatus.values()}
        for status, count in self.session.exec(statement).all():
            counts[status] = count
        return counts

    def create(self, song: Song) -> Song:
        self.session.add(song)
        self._flush(song.youtube_id)
        self.session.refresh(song)
        return song

    def update(self, song: Song, changes: Dict[str, Any]) -> Song:
        for field, value in changes.items():
            setattr(song, field, value)
        song.updated_at = utcnow()
        self.session.add(song)
        self._flush(song.youtube_id)
        self.session.refresh(song)
        return song

    def soft_delete(self, song: Song) -> Song:
        now = utcnow()
        song.deleted_at = now
        song.updated_at = now
        self.session.add(song)
        self.session.flush()
        self.session.refresh(song)
        return song

    def commit(self) -> None:
        self.session.commit()

    # Helpers

    def _active(self):
        return select(Song).where(Song.deleted_at.is_(None))

    def _ranked(self):
        return (
            self._active()
            .where(Song.status == SongStatus.APPROVED.value)
            .order_by(Song.views.desc(), Song.id.asc())
        )

    def _paginate_recent(self, page: int, per_page: int, *criteria) -> PageResult:
        statement = (
            self._active()
            .where(*criteria)
            .order_by(Song.created_at.desc(), Song.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        items = list(self.session.exec(statement).all())
        return items, self._count(*criteria)

    def _count(self, *criteria) -> int:
        statement = (
            select(func.count())
            .select_from(Song)
            .where(Song.deleted_at.is_(None), *criteria)
        )
        return self.session.exec(statement).one()

    def _flush(self, youtube_id: str) -> None:
        """Flush, turning a unique-index hit on youtube_id into DuplicateSong."""
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            if "youtube_id" not in str(e.orig):
                raise
            raise DuplicateSong(
                f"A song with YouTube id '{youtube_id}' already exists"
            ) from e
