"""Behavior of the JSON-file board store and its post/comment helpers."""

import json
from datetime import datetime, timedelta, timezone

import pytest

import post_store
from post_store import (
    InvalidBoardName,
    add_comment,
    bump_counter,
    find_post,
    new_comment,
    new_post,
    parse_timestamp,
    search_posts,
)

pytestmark = pytest.mark.store

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _posts(count):
    """Build posts with strictly increasing creation times, oldest first."""
    return [
        new_post(f"title {i}", f"content {i}", now=BASE_TIME + timedelta(minutes=i))
        for i in range(count)
    ]


def test_unknown_board_loads_empty(store):
    """A board that was never created reads as empty with a missing status."""
    assert store.load_posts("never-created") == []
    assert store.read("never-created").status == "missing"


def test_load_sorts_newest_first_regardless_of_saved_order(store):
    """Saved order does not matter; load always returns newest first."""
    posts = _posts(4)
    shuffled = [posts[2], posts[0], posts[3], posts[1]]

    # Setup: persist posts in scrambled order.
    store.save_posts("general", shuffled)
    loaded = store.load_posts("general")

    # Assertions: descending by createdAt and the same elements as saved.
    assert [p["title"] for p in loaded] == ["title 3", "title 2", "title 1", "title 0"]
    assert sorted(loaded, key=lambda p: p["id"]) == sorted(posts, key=lambda p: p["id"])
    assert store.read("general").status == "ok"


def test_save_load_save_is_byte_identical(store, data_dir):
    """Re-saving what was loaded produces the same file content."""
    store.save_posts("general", list(reversed(_posts(3))))
    first = (data_dir / "general.json").read_bytes()

    store.save_posts("general", store.load_posts("general"))
    second = (data_dir / "general.json").read_bytes()

    assert first == second


def test_saved_file_is_indented_utf8_json(store, data_dir):
    """Board files are pretty-printed and keep non-ASCII text readable."""
    store.save_posts("자유게시판", [new_post("안녕", "<p>hi</p>", now=BASE_TIME)])

    text = (data_dir / "자유게시판.json").read_text(encoding="utf-8")
    assert text.startswith("[\n  {\n")
    assert "안녕" in text
    assert json.loads(text)[0]["createdAt"] == "2024-05-01T12:00:00.000Z"


def test_corrupt_file_reads_as_empty(store, data_dir):
    """Undecodable JSON and non-list documents both count as corrupt."""
    (data_dir / "broken.json").write_text("{not json", encoding="utf-8")
    (data_dir / "object.json").write_text('{"id": 1}', encoding="utf-8")

    assert store.load_posts("broken") == []
    assert store.read("broken").status == "corrupt"
    assert store.load_posts("object") == []
    assert store.read("object").status == "corrupt"


def test_save_leaves_no_temporary_files(store, data_dir):
    store.save_posts("general", _posts(2))
    assert sorted(p.name for p in data_dir.iterdir()) == ["general.json"]


def test_list_boards_strips_only_json_suffix(store, data_dir):
    """Non-JSON files are listed under their full name."""
    store.create_board("news")
    store.create_board("general")
    (data_dir / "notes.txt").write_text("stray", encoding="utf-8")

    assert store.list_boards() == ["general", "news", "notes.txt"]


def test_list_boards_raises_when_directory_missing(tmp_path):
    missing_store = post_store.PostStore(tmp_path / "absent")
    with pytest.raises(OSError):
        missing_store.list_boards()


def test_create_board_writes_empty_array_once(store, data_dir):
    """Creating an existing board keeps its posts."""
    assert store.create_board("general") is True
    assert (data_dir / "general.json").read_text(encoding="utf-8") == "[]"

    store.save_posts("general", _posts(1))
    assert store.create_board("general") is False
    assert len(store.load_posts("general")) == 1


def test_board_names_cannot_leave_data_directory(store, tmp_path):
    """Unmappable names are refused for writes and read as missing boards."""
    with pytest.raises(InvalidBoardName):
        store.create_board("../escape")
    with pytest.raises(InvalidBoardName):
        store.save_posts("nested/board", [])
    assert not (tmp_path / "escape.json").exists()

    assert store.read("nested/board") == ([], "missing")
    assert store.read("bad\x00name") == ([], "missing")


def test_edit_rejects_unmappable_name_before_locking(store):
    with pytest.raises(InvalidBoardName):
        with store.edit("bad\x00name"):
            pass
    assert len(store._locks) == 0


def test_board_locks_released_after_edits(store):
    """Locks for boards nobody is editing do not accumulate."""
    for i in range(50):
        with store.edit(f"ghost{i}") as session:
            assert session.posts == []
        store.create_board(f"real{i}")

    assert len(store._locks) == 0


def test_list_boards_skips_inflight_temp_files(store, data_dir):
    store.create_board("general")
    (data_dir / ".general.json.abc123.tmp").write_text("[", encoding="utf-8")

    assert store.list_boards() == ["general"]


def test_edit_saves_only_when_marked_dirty(store, data_dir):
    """An edit that changes nothing does not touch the file."""
    store.save_posts("general", _posts(2))
    path = data_dir / "general.json"
    before = path.read_bytes()

    with store.edit("general") as session:
        session.posts.clear()
    assert path.read_bytes() == before

    with store.edit("general") as session:
        session.posts.append(new_post("late", "", now=BASE_TIME + timedelta(days=1)))
        session.mark_dirty()
    assert store.load_posts("general")[0]["title"] == "late"


def test_edit_discards_changes_when_block_raises(store):
    store.save_posts("general", _posts(1))

    with pytest.raises(RuntimeError):
        with store.edit("general") as session:
            session.posts.clear()
            session.mark_dirty()
            raise RuntimeError("abort")

    assert len(store.load_posts("general")) == 1


def test_new_post_shape():
    post = new_post("Hello", "<p>x</p>", "/uploads/a.png", now=BASE_TIME)

    assert post == {
        "id": int(BASE_TIME.timestamp() * 1000),
        "title": "Hello",
        "content": "<p>x</p>",
        "file": "/uploads/a.png",
        "createdAt": "2024-05-01T12:00:00.000Z",
        "comments": [],
        "likes": 0,
        "dislikes": 0,
    }


def test_add_comment_top_level_and_reply():
    """Replies attach to the addressed top-level comment only."""
    post = new_post("t", "c", now=BASE_TIME)

    assert add_comment(post, new_comment("first", now=BASE_TIME)) is True
    assert add_comment(post, new_comment("answer", now=BASE_TIME), reply_to=0) is True

    assert [c["content"] for c in post["comments"]] == ["first"]
    assert [r["content"] for r in post["comments"][0]["replies"]] == ["answer"]


@pytest.mark.parametrize("index", [1, 5, -1])
def test_add_comment_out_of_range_reply_changes_nothing(index):
    post = new_post("t", "c", now=BASE_TIME)
    add_comment(post, new_comment("only", now=BASE_TIME))
    snapshot = json.dumps(post)

    assert add_comment(post, new_comment("lost", now=BASE_TIME), reply_to=index) is False
    assert json.dumps(post) == snapshot


def test_bump_counter_increments_and_rejects_unknown_field():
    post = new_post("t", "c", now=BASE_TIME)

    bump_counter(post, "likes")
    bump_counter(post, "likes")
    bump_counter(post, "dislikes")

    assert post["likes"] == 2
    assert post["dislikes"] == 1
    with pytest.raises(ValueError):
        bump_counter(post, "views")


def test_find_and_search_posts():
    """Lookup by id and case-sensitive literal substring search."""
    posts = [
        new_post("Hello world", "plain", now=BASE_TIME),
        new_post("other", "says Hello", now=BASE_TIME + timedelta(seconds=1)),
        new_post("quiet", "nothing", now=BASE_TIME + timedelta(seconds=2)),
    ]

    assert find_post(posts, posts[1]["id"]) is posts[1]
    assert find_post(posts, 42) is None
    assert find_post(posts, None) is None
    assert search_posts(posts, "Hello") == posts[:2]
    assert search_posts(posts, "hello") == []
    assert search_posts(posts, "") == posts


def test_parse_timestamp_handles_bad_values():
    assert parse_timestamp("2024-05-01T12:00:00.000Z") == BASE_TIME
    assert parse_timestamp("2024-05-01T12:00:00") == BASE_TIME
    assert parse_timestamp("garbage") < BASE_TIME
    assert parse_timestamp(None) < BASE_TIME
