import random

import pytest
from sqlalchemy.exc import IntegrityError

from songrank.core.context import RequestContext
from songrank.core.exceptions import DuplicateSong, InvalidStatusError
from songrank.models import Song, SongStatus
from songrank.repositories.songs import SongsRepository, SongStore

from fakes import InMemorySongsRepository, make_song, video_id

PENDING = SongStatus.PENDING.value
REJECTED = SongStatus.REJECTED.value


@pytest.fixture
def repo(session):
    return SongsRepository(session)


def add_all(repo, songs):
    created = [repo.create(song) for song in songs]
    repo.commit()
    return created


def test_top_and_remaining_split_the_ranking(repo):
    add_all(repo, [make_song(n, views=v) for n, v in enumerate([100, 90, 80, 70, 60, 50], 1)])

    top = repo.find_top(5)
    remaining, total = repo.find_remaining(1, 10)

    assert [s.views for s in top] == [100, 90, 80, 70, 60]
    assert [s.views for s in remaining] == [50]
    assert total == 1


def test_top_only_counts_approved_active_songs(repo):
    songs = add_all(repo, [
        make_song(1, views=10),
        make_song(2, views=999, status=PENDING),
        make_song(3, views=998, status=REJECTED),
        make_song(4, views=997),
    ])
    repo.soft_delete(songs[3])
    repo.commit()

    assert [s.id for s in repo.find_top(5)] == [songs[0].id]


def test_ties_break_on_id(repo):
    songs = add_all(repo, [make_song(n, views=500) for n in range(1, 8)])
    ids = [s.id for s in songs]

    assert [s.id for s in repo.find_top(5)] == ids[:5]
    assert [s.id for s in repo.find_remaining(1, 10)[0]] == ids[5:]
    assert [s.id for s in repo.find_top(5)] == ids[:5]


def test_remaining_pages_never_overlap_the_top(repo):
    rng = random.Random(7)
    add_all(repo, [make_song(n, views=rng.randint(0, 50)) for n in range(1, 15)])

    top_ids = {s.id for s in repo.find_top(5)}
    seen = []
    page = 1
    while True:
        items, total = repo.find_remaining(page, 3)
        if not items:
            break
        seen.extend(s.id for s in items)
        page += 1

    assert total == 9
    assert len(seen) == len(set(seen)) == 9
    assert not top_ids & set(seen)


def test_remaining_is_empty_with_five_or_fewer(repo):
    add_all(repo, [make_song(n, views=n) for n in range(1, 4)])

    assert repo.find_remaining(1, 10) == ([], 0)


def test_find_by_status_orders_most_recent_first(repo):
    add_all(repo, [
        make_song(1, status=PENDING),
        make_song(2, status=PENDING),
        make_song(3),
        make_song(4, status=PENDING),
    ])

    items, total = repo.find_by_status(PENDING, 1, 10)

    assert [s.youtube_id for s in items] == [video_id(4), video_id(2), video_id(1)]
    assert total == 3


def test_find_by_status_rejects_unknown_status(repo):
    with pytest.raises(InvalidStatusError) as excinfo:
        repo.find_by_status("bogus", 1, 10)
    assert "pending, approved, rejected" in excinfo.value.message


def test_soft_deleted_songs_are_hidden_but_kept(repo):
    song = add_all(repo, [make_song(1)])[0]
    repo.soft_delete(song)
    repo.commit()

    assert repo.find_by_status(SongStatus.APPROVED.value, 1, 10) == ([], 0)
    assert repo.get_by_id(song.id) is None

    kept = repo.get_by_id(song.id, include_deleted=True)
    assert kept is not None
    assert kept.deleted_at is not None
    assert repo.get_by_youtube_id(video_id(1)) is None
    assert repo.get_by_youtube_id(video_id(1), include_deleted=True).id == song.id


def test_find_all_forces_approved_for_non_admins(repo, user_ctx, admin_ctx):
    add_all(repo, [make_song(1), make_song(2, status=PENDING), make_song(3, status=REJECTED)])

    for ctx in (RequestContext.anonymous(), user_ctx):
        items, total = repo.find_all(ctx, PENDING, 1, 10)
        assert total == 1
        assert all(s.status == SongStatus.APPROVED.value for s in items)

    _, everything = repo.find_all(admin_ctx, None, 1, 10)
    pending, _ = repo.find_all(admin_ctx, PENDING, 1, 10)
    assert everything == 3
    assert [s.status for s in pending] == [PENDING]


def test_duplicate_youtube_id_maps_to_duplicate_song(repo):
    add_all(repo, [make_song(1)])

    with pytest.raises(DuplicateSong):
        repo.create(make_song(2, youtube_id=video_id(1)))


def test_deleted_song_still_blocks_its_youtube_id(repo):
    song = add_all(repo, [make_song(1)])[0]
    repo.soft_delete(song)
    repo.commit()

    with pytest.raises(DuplicateSong):
        repo.create(make_song(2, youtube_id=video_id(1)))


def test_update_stamps_updated_at(repo):
    song = add_all(repo, [make_song(1, status=PENDING)])[0]
    before = song.updated_at

    updated = repo.update(song, {"status": SongStatus.APPROVED.value, "title": "New"})

    assert updated.status == SongStatus.APPROVED.value
    assert updated.title == "New"
    assert updated.updated_at >= before


def test_count_by_status_ignores_deleted(repo):
    songs = add_all(repo, [
        make_song(1),
        make_song(2),
        make_song(3, status=PENDING),
        make_song(4, status=REJECTED),
    ])
    repo.soft_delete(songs[1])
    repo.commit()

    assert repo.count_by_status() == {"pending": 1, "approved": 1, "rejected": 1}


def test_table_carries_the_check_constraints():
    names = {constraint.name for constraint in Song.__table__.constraints}

    assert {"ck_songs_views_non_negative", "ck_songs_status"} <= names


@pytest.mark.parametrize("overrides", [{"views": -1}, {"status": "archived"}])
def test_check_violations_are_not_reported_as_duplicates(repo, overrides):
    with pytest.raises(IntegrityError):
        repo.create(make_song(1, **overrides))

    assert repo.get_by_youtube_id(video_id(1)) is None


def public_methods(cls):
    return {name for name in vars(cls) if not name.startswith("_")}


@pytest.mark.parametrize("store", [SongsRepository, InMemorySongsRepository])
def test_stores_expose_exactly_the_protocol(store):
    assert public_methods(store) == public_methods(SongStore)
    assert "rollback" not in public_methods(SongStore)
