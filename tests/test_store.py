from datetime import timedelta
from pathlib import Path

import pytest
from sqlmodel import select


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.syspath_prepend(str(Path(__file__).resolve().parents[1]))


@pytest.fixture()
def session():
    from sqlmodel import Session

    from notedly.db import get_engine, init_db

    init_db()
    with Session(get_engine()) as session:
        yield session


@pytest.fixture()
def make_user(session):
    from notedly import store

    def _factory(name: str):
        return store.insert_user(
            session,
            provider_identity=f"github:{name}",
            credential_hash=f"hash-{name}",
            email=f"{name}@example.com",
        )

    return _factory


def test_lookups_return_none_when_missing(session):
    from notedly import store

    assert store.get_user(session, 42) is None
    assert store.get_board(session, 42) is None
    assert store.get_note(session, 42) is None
    assert store.get_permission(session, 1, 42) is None
    assert store.get_user_by_credential_hash(session, "nope") is None
    assert store.get_user_by_provider_identity(session, "github:nope") is None


def test_insert_board_grants_owner_full_access(session, make_user):
    from notedly import store
    from notedly.models import BoardVisibility

    owner = make_user("owner")
    board = store.insert_board(session, owner_id=owner.id, title="Trip Plans")

    assert board.visibility == BoardVisibility.PRIVATE
    grant = store.get_permission(session, owner.id, board.id)
    assert grant is not None
    assert grant.can_read is True
    assert grant.can_write is True


def test_duplicate_grant_is_conflict(session, make_user):
    from notedly import store
    from notedly.errors import Conflict

    owner = make_user("owner")
    guest = make_user("guest")
    board = store.insert_board(session, owner_id=owner.id, title="Trip Plans")
    store.insert_permission(session, user_id=guest.id, board_id=board.id, can_read=True, can_write=False)

    with pytest.raises(Conflict):
        store.insert_permission(session, user_id=guest.id, board_id=board.id, can_read=True, can_write=True)

    # The session is usable again after the rollback.
    assert store.get_permission(session, guest.id, board.id).can_write is False


def test_duplicate_provider_identity_is_conflict(session, make_user):
    from notedly import store
    from notedly.errors import Conflict

    make_user("dup")
    with pytest.raises(Conflict):
        store.insert_user(session, provider_identity="github:dup", credential_hash="other", email="x@example.com")


def test_visible_boards_include_owned_and_granted(session, make_user):
    from notedly import store

    alice = make_user("alice")
    bob = make_user("bob")
    own = store.insert_board(session, owner_id=bob.id, title="Bob's")
    shared = store.insert_board(session, owner_id=alice.id, title="Shared")
    hidden = store.insert_board(session, owner_id=alice.id, title="Hidden")
    store.insert_permission(session, user_id=bob.id, board_id=shared.id, can_read=False, can_write=True)

    visible = store.list_visible_board_ids(session, bob.id)
    assert visible == sorted([own.id, shared.id])
    assert hidden.id not in visible
    assert store.list_owned_board_ids(session, alice.id) == [shared.id, hidden.id]


def test_delete_board_cascade_leaves_no_orphans(session, make_user):
    from notedly import store
    from notedly.models import Note, Permission

    owner = make_user("owner")
    guest = make_user("guest")
    doomed = store.insert_board(session, owner_id=owner.id, title="Doomed")
    kept = store.insert_board(session, owner_id=owner.id, title="Kept")
    store.insert_permission(session, user_id=guest.id, board_id=doomed.id, can_read=True, can_write=True)
    for title in ("one", "two"):
        store.insert_note(session, author_id=guest.id, board_id=doomed.id, title=title, body="")
    survivor = store.insert_note(session, author_id=owner.id, board_id=kept.id, title="stay", body="")
    doomed_id = doomed.id

    assert store.delete_board_cascade(session, doomed_id) is True

    assert store.get_board(session, doomed_id) is None
    assert session.exec(select(Note).where(Note.board_id == doomed_id)).all() == []
    assert session.exec(select(Permission).where(Permission.board_id == doomed_id)).all() == []
    assert store.list_note_ids_for_board(session, kept.id) == [survivor.id]
    assert store.get_permission(session, owner.id, kept.id) is not None
    assert store.delete_board_cascade(session, doomed_id) is False


def test_update_board_and_note(session, make_user):
    from notedly import store
    from notedly.models import BoardVisibility

    owner = make_user("owner")
    board = store.insert_board(session, owner_id=owner.id, title="Draft")
    before = board.updated_at
    board = store.update_board(session, board, title="Final", visibility=BoardVisibility.LINK)
    assert board.title == "Final"
    assert board.visibility == BoardVisibility.LINK
    assert board.owner_id == owner.id
    assert board.updated_at >= before

    note = store.insert_note(session, author_id=owner.id, board_id=board.id, title="t", body="b")
    note = store.update_note(session, note, body="changed")
    assert note.title == "t"
    assert note.body == "changed"
    assert store.list_note_ids_for_author(session, owner.id) == [note.id]

    store.delete_note(session, note)
    assert store.get_note(session, note.id) is None


def test_user_listing_and_credential_rotation(session, make_user):
    from notedly import store

    first = make_user("first")
    second = make_user("second")
    assert store.list_user_ids(session) == [first.id, second.id]

    store.update_user_credential(session, first, credential_hash="rotated", email="")
    assert store.get_user_by_credential_hash(session, "hash-first") is None
    refreshed = store.get_user_by_credential_hash(session, "rotated")
    assert refreshed.id == first.id
    assert refreshed.email == "first@example.com"


def test_oauth_state_is_single_use(session):
    from notedly import store

    store.insert_oauth_state(session, state="s1", provider="github", code_verifier="v1")

    pending = store.pop_oauth_state(session, "s1")
    assert pending is not None
    assert pending.provider == "github"
    assert pending.code_verifier == "v1"
    assert store.pop_oauth_state(session, "s1") is None


def test_purge_expired_oauth_states(session):
    from notedly import store
    from notedly.models import OAuthState, utcnow

    session.add(OAuthState(state="old", provider="github", code_verifier="v", created_at=utcnow() - timedelta(hours=1)))
    session.commit()
    store.insert_oauth_state(session, state="fresh", provider="google", code_verifier="v")

    assert store.purge_expired_oauth_states(session, 600) == 1
    assert store.pop_oauth_state(session, "old") is None
    assert store.pop_oauth_state(session, "fresh") is not None


def test_store_failures_become_store_unavailable(session, monkeypatch):
    from sqlalchemy.exc import OperationalError

    from notedly import store
    from notedly.errors import StoreUnavailable

    def _boom(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection lost"))

    monkeypatch.setattr(session, "get", _boom)
    with pytest.raises(StoreUnavailable):
        store.get_board(session, 1)
