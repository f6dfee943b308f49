from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tests.factories import bearer


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.syspath_prepend(str(Path(__file__).resolve().parents[1]))


@pytest.fixture()
def client():
    from notedly.db import init_db
    from notedly.main import create_app

    init_db()
    return TestClient(create_app())


@pytest.fixture()
def board_with_guests(client):
    from tests.factories import create_board, create_user, grant

    owner = create_user(token="owner")
    reader = create_user(token="reader")
    writer = create_user(token="writer")
    editor = create_user(token="editor")
    board = create_board(owner=owner, title="Recipes")
    grant(user=reader, board=board, can_read=True, can_write=False)
    grant(user=writer, board=board, can_read=False, can_write=True)
    grant(user=editor, board=board, can_read=True, can_write=True)
    return board, {"owner": owner, "reader": reader, "writer": writer, "editor": editor}


def test_note_lifecycle(client, board_with_guests):
    board, people = board_with_guests

    created = client.post(
        "/api/notes",
        json={"board_id": board.id, "title": "Pancakes", "body": "flour, eggs"},
        headers=bearer("editor"),
    )
    assert created.status_code == 201
    note = created.json()
    assert note["author_id"] == people["editor"].id
    assert note["board_id"] == board.id

    fetched = client.get(f"/api/notes/{note['id']}", headers=bearer("reader"))
    assert fetched.status_code == 200
    assert fetched.json()["body"] == "flour, eggs"

    updated = client.patch(f"/api/notes/{note['id']}", json={"body": "flour, eggs, milk"}, headers=bearer("editor"))
    assert updated.status_code == 200
    assert updated.json()["title"] == "Pancakes"
    assert updated.json()["body"] == "flour, eggs, milk"

    deleted = client.delete(f"/api/notes/{note['id']}", headers=bearer("editor"))
    assert deleted.status_code == 204
    assert client.get(f"/api/notes/{note['id']}", headers=bearer("owner")).status_code == 404


def test_write_only_grant_creates_but_cannot_read(client, board_with_guests):
    board, _ = board_with_guests

    created = client.post(
        "/api/notes",
        json={"board_id": board.id, "title": "Secret"},
        headers=bearer("writer"),
    )
    assert created.status_code == 201
    note_id = created.json()["id"]
    assert created.json()["body"] == ""

    read = client.get(f"/api/notes/{note_id}", headers=bearer("writer"))
    assert read.status_code == 403
    assert read.json()["code"] == "read_denied"


def test_board_writer_may_edit_other_authors_notes(client, board_with_guests):
    from tests.factories import create_note

    board, people = board_with_guests
    note = create_note(author=people["owner"], board=board, title="Owner's")

    response = client.patch(f"/api/notes/{note.id}", json={"title": "Edited"}, headers=bearer("writer"))
    assert response.status_code == 200
    assert response.json()["title"] == "Edited"
    assert response.json()["author_id"] == people["owner"].id


def test_reader_cannot_modify_notes(client, board_with_guests):
    from tests.factories import create_note

    board, people = board_with_guests
    note = create_note(author=people["owner"], board=board)

    patch = client.patch(f"/api/notes/{note.id}", json={"title": "Nope"}, headers=bearer("reader"))
    assert patch.status_code == 403
    assert patch.json()["code"] == "write_denied"

    delete = client.delete(f"/api/notes/{note.id}", headers=bearer("reader"))
    assert delete.status_code == 403


def test_outsider_and_missing_board(client, board_with_guests):
    from tests.factories import create_note, create_user

    board, people = board_with_guests
    create_user(token="outsider")
    note = create_note(author=people["owner"], board=board)

    outsider = client.get(f"/api/notes/{note.id}", headers=bearer("outsider"))
    assert outsider.status_code == 403
    assert outsider.json()["code"] == "not_invited"

    missing_board = client.post("/api/notes", json={"board_id": 999, "title": "x"}, headers=bearer("owner"))
    assert missing_board.status_code == 404

    empty_title = client.post("/api/notes", json={"board_id": board.id, "title": ""}, headers=bearer("owner"))
    assert empty_title.status_code == 422


def test_notes_require_authentication(client, board_with_guests):
    assert client.get("/api/notes/1").status_code == 401
    assert client.post("/api/notes", json={"board_id": 1, "title": "x"}).status_code == 401
