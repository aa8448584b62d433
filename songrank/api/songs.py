import logging
from fastapi import APIRouter, Depends, Path, Query, status
from typing import List, Optional
from songrank.core.config import settings
from songrank.core.context import RequestContext
from songrank.core.exceptions import NotFound
from songrank.core.policy import song_policy
from songrank.models import SongStatus
from songrank.repositories.songs import SongsRepository, ensure_valid_status
from songrank.schemas.songs import (
    MessageEnvelope,
    Page,
    SongCreate,
    SongEnvelope,
    SongRead,
    SongReject,
    SongStats,
    SongSuggest,
    SongUpdate,
)
from songrank.services.moderation_service import SongModerationService
from songrank.api.dependencies import (
    get_moderation_service,
    get_request_context,
    get_songs_repository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/songs", tags=["Songs"])

# Keeps ids inside the INTEGER primary key and offsets inside a BIGINT
MAX_SONG_ID = 2**31 - 1
MAX_PAGE = 1_000_000

ADMIN_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"description": "Missing or invalid access token"},
    status.HTTP_403_FORBIDDEN: {"description": "Admin access required"},
    status.HTTP_404_NOT_FOUND: {"description": "Song not found"},
}

SUBMIT_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"description": "YouTube URL could not be resolved"},
    status.HTTP_409_CONFLICT: {"description": "Song already exists"},
    status.HTTP_422_UNPROCESSABLE_ENTITY: {"description": "Validation error"},
}


def _page(items, page: int, per_page: int, total: int) -> Page[SongRead]:
    return Page[SongRead].build(
        [SongRead.model_validate(s) for s in items], page, per_page, total
    )


# PUBLIC

@router.get("/top5", response_model=List[SongRead])
def top_songs(songs: SongsRepository = Depends(get_songs_repository)):
    """
    The leaderboard: up to 5 approved songs, most viewed first.

    The first entry is the champion.
    """
    top = songs.find_top(settings.TOP_SONGS_LIMIT)
    logger.info(f"Top songs requested: {[s.id for s in top]}")
    return [SongRead.model_validate(s) for s in top]


@router.get("/remaining", response_model=Page[SongRead])
def remaining_songs(
    page: int = Query(1, ge=1, le=MAX_PAGE, description="Page number"),
    per_page: int = Query(settings.REMAINING_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    songs: SongsRepository = Depends(get_songs_repository)
):
    """Approved songs ranked 6th onwards, paginated."""
    items, total = songs.find_remaining(page, per_page)
    return _page(items, page, per_page, total)


@router.get("/stats", response_model=SongStats, responses=ADMIN_RESPONSES)
def song_stats(
    ctx: RequestContext = Depends(get_request_context),
    songs: SongsRepository = Depends(get_songs_repository)
):
    """Song counters per status (admin only)."""
    song_policy.authorize_moderation(ctx)
    counts = songs.count_by_status()
    return SongStats(total=sum(counts.values()), **counts)


@router.get(
    "/status/{song_status}",
    response_model=Page[SongRead],
    responses={status.HTTP_400_BAD_REQUEST: {"description": "Invalid status"}},
)
def songs_by_status(
    song_status: str = Path(..., description="pending, approved or rejected"),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    per_page: int = Query(settings.STATUS_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    songs: SongsRepository = Depends(get_songs_repository)
):
    """Songs with the given status, most recent first."""
    ensure_valid_status(song_status)
    logger.info(f"Songs by status '{song_status}' requested by {ctx.describe()}")
    items, total = songs.find_by_status(song_status, page, per_page)
    return _page(items, page, per_page, total)


@router.get("", response_model=Page[SongRead])
def list_songs(
    song_status: Optional[str] = Query(None, alias="status", description="Admins only; others always get approved"),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    per_page: int = Query(settings.LIST_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    ctx: RequestContext = Depends(get_request_context),
    songs: SongsRepository = Depends(get_songs_repository)
):
    """General song list, most recent first."""
    items, total = songs.find_all(ctx, song_status, page, per_page)
    return _page(items, page, per_page, total)


@router.post(
    "/suggest",
    response_model=SongEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses=SUBMIT_RESPONSES,
)
def suggest_song(
    payload: SongSuggest,
    ctx: RequestContext = Depends(get_request_context),
    service: SongModerationService = Depends(get_moderation_service)
):
    """
    Suggest a song by YouTube URL. Open to everybody; the song waits for
    moderation as ``pending``.
    """
    song = service.suggest(ctx, payload.youtube_url)
    return SongEnvelope(
        message="Song suggestion submitted successfully",
        data=SongRead.model_validate(song),
    )


@router.get("/{song_id}", response_model=SongRead, responses={status.HTTP_404_NOT_FOUND: {"description": "Song not found"}})
def get_song(
    song_id: int = Path(..., ge=1, le=MAX_SONG_ID),
    ctx: RequestContext = Depends(get_request_context),
    songs: SongsRepository = Depends(get_songs_repository)
):
    """
    Song detail. Admins can read any song, soft-deleted ones included;
    everybody else only sees approved songs.
    """
    if song_policy.can_moderate(ctx):
        song = songs.get_by_id(song_id, include_deleted=True)
    else:
        song = songs.get_by_id(song_id)
        if song and song.status != SongStatus.APPROVED.value:
            song = None

    if not song:
        raise NotFound(f"Song {song_id} not found")
    return SongRead.model_validate(song)


# ADMIN

@router.post(
    "",
    response_model=SongEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={**ADMIN_RESPONSES, **SUBMIT_RESPONSES},
)
def create_song(
    payload: SongCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: SongModerationService = Depends(get_moderation_service)
):
    """Create an already approved song (admin only)."""
    song = service.create_direct(ctx, payload)
    return SongEnvelope(message="Song created successfully", data=SongRead.model_validate(song))


@router.put("/{song_id}", response_model=SongEnvelope, responses={**ADMIN_RESPONSES, **SUBMIT_RESPONSES})
def update_song(
    payload: SongUpdate,
    song_id: int = Path(..., ge=1, le=MAX_SONG_ID),
    ctx: RequestContext = Depends(get_request_context),
    service: SongModerationService = Depends(get_moderation_service)
):
    """
    Edit title, artist, status or YouTube URL (admin only).

    A new YouTube URL refreshes views and thumbnail; if it cannot be
    resolved the whole edit is rejected.
    """
    song = service.edit(ctx, song_id, payload)
    return SongEnvelope(message="Song updated successfully", data=SongRead.model_validate(song))


@router.post("/{song_id}/approve", response_model=SongEnvelope, responses=ADMIN_RESPONSES)
def approve_song(
    song_id: int = Path(..., ge=1, le=MAX_SONG_ID),
    ctx: RequestContext = Depends(get_request_context),
    service: SongModerationService = Depends(get_moderation_service)
):
    song = service.approve(ctx, song_id)
    return SongEnvelope(message="Song approved successfully", data=SongRead.model_validate(song))


@router.post("/{song_id}/reject", response_model=SongEnvelope, responses=ADMIN_RESPONSES)
def reject_song(
    song_id: int = Path(..., ge=1, le=MAX_SONG_ID),
    payload: Optional[SongReject] = None,
    ctx: RequestContext = Depends(get_request_context),
    service: SongModerationService = Depends(get_moderation_service)
):
    """Reject a song (admin only). The optional reason is stored on the song."""
    reason = payload.reason if payload else None
    song = service.reject(ctx, song_id, reason)
    return SongEnvelope(message="Song rejected successfully", data=SongRead.model_validate(song))


@router.delete("/{song_id}", response_model=MessageEnvelope, responses=ADMIN_RESPONSES)
def delete_song(
    song_id: int = Path(..., ge=1, le=MAX_SONG_ID),
    ctx: RequestContext = Depends(get_request_context),
    service: SongModerationService = Depends(get_moderation_service)
):
    """Soft delete (admin only). The row stays for audit and uniqueness checks."""
    service.remove(ctx, song_id)
    return MessageEnvelope(message="Song deleted successfully")
