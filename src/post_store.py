"""JSON-file persistence for boards and their posts.

Each board is a single ``<board>.json`` file holding a pretty-printed list of
post objects. Every mutation rewrites the whole file.
"""

import json
import logging
import os
import tempfile
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger(__name__)

BOARD_SUFFIX = ".json"
TEMP_SUFFIX = ".tmp"
COUNTER_FIELDS = ("likes", "dislikes")
_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class InvalidBoardName(ValueError):
    """Raised when a board name cannot map to a file inside the data directory."""


class BoardSnapshot(NamedTuple):
    """Posts read from a board file plus how the read went.

    ``status`` is ``"ok"``, ``"missing"`` (no file) or ``"corrupt"`` (the file
    could not be decoded into a list).
    """

    posts: list
    status: str


class BoardEdit:
    """Mutable view over one board's posts inside :meth:`PostStore.edit`."""

    def __init__(self, board, posts):
        self.board = board
        self.posts = posts
        self.dirty = False

    def mark_dirty(self):
        self.dirty = True


def format_timestamp(moment):
    """Render an aware datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value):
    """Parse a stored ``createdAt`` value into an aware UTC datetime.

    Missing or malformed values map to the oldest representable moment so
    they sort after every real post.

    :param value: ISO-8601 text as written by :func:`format_timestamp`.
    :type value: str | None
    :returns: Parsed timestamp.
    :rtype: datetime.datetime
    """
    if not isinstance(value, str) or not value:
        return _OLDEST
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _sort_newest_first(posts):
    return sorted(posts, key=lambda post: parse_timestamp(post.get("createdAt")), reverse=True)


def _now():
    return datetime.now(timezone.utc)


def new_post(title, content, file_url=None, now=None):
    """Build a fresh post record.

    The id is the creation time in epoch milliseconds, so two posts created
    within the same millisecond share an id.

    :param title: Post title as submitted.
    :type title: str
    :param content: Already-sanitized HTML body.
    :type content: str
    :param file_url: Public ``/uploads/...`` path of the attachment, if any.
    :type file_url: str | None
    :param now: Creation time; defaults to the current UTC time.
    :type now: datetime.datetime | None
    :returns: Post dictionary ready to be appended and saved.
    :rtype: dict
    """
    moment = now or _now()
    return {
        "id": int(moment.timestamp() * 1000),
        "title": title,
        "content": content,
        "file": file_url,
        "createdAt": format_timestamp(moment),
        "comments": [],
        "likes": 0,
        "dislikes": 0,
    }


def new_comment(content, now=None):
    """Build a comment record with an empty reply list."""
    return {
        "content": content,
        "createdAt": format_timestamp(now or _now()),
        "replies": [],
    }


def find_post(posts, post_id):
    """Return the first post whose ``id`` equals ``post_id``, else ``None``."""
    if post_id is None:
        return None
    return next((post for post in posts if post.get("id") == post_id), None)


def search_posts(posts, query):
    """Filter posts whose title or content contains ``query`` verbatim.

    Matching is a case-sensitive substring test; an empty query keeps
    every post.

    :param posts: Posts to filter, order preserved.
    :type posts: list[dict]
    :param query: Literal text to look for.
    :type query: str
    :returns: Matching posts.
    :rtype: list[dict]
    """
    query = query or ""
    return [
        post
        for post in posts
        if query in (post.get("title") or "") or query in (post.get("content") or "")
    ]


def add_comment(post, comment, reply_to=None):
    """Attach a comment to a post, or as a reply to one of its comments.

    Replies only ever hang off top-level comments.

    :param post: Target post (mutated in place).
    :type post: dict
    :param comment: Record built by :func:`new_comment`.
    :type comment: dict
    :param reply_to: Index of the top-level comment being answered.
    :type reply_to: int | None
    :returns: ``True`` when the comment was attached.
    :rtype: bool
    """
    comments = post.setdefault("comments", [])
    if reply_to is None:
        comments.append(comment)
        return True
    if not 0 <= reply_to < len(comments):
        return False
    comments[reply_to].setdefault("replies", []).append(comment)
    return True


def bump_counter(post, field):
    """Increment ``likes`` or ``dislikes`` on a post by one."""
    if field not in COUNTER_FIELDS:
        raise ValueError(f"unknown counter: {field}")
    post[field] = int(post.get(field) or 0) + 1
    return post[field]


class PostStore:
    """Translate board names to their JSON-backed post collections."""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def _board_path(self, board):
        try:
            root = self.data_dir.resolve()
            path = (self.data_dir / f"{board}{BOARD_SUFFIX}").resolve()
        except ValueError as exc:
            raise InvalidBoardName(board) from exc
        if path.parent != root:
            raise InvalidBoardName(board)
        return path

    def _lock_for(self, board):
        # Entries vanish once no request holds the lock.
        with self._locks_guard:
            lock = self._locks.get(board)
            if lock is None:
                lock = threading.Lock()
                self._locks[board] = lock
            return lock

    def read(self, board):
        """Read a board file and report whether it was present and decodable.

        Names that cannot map to a file in the data directory read as missing.

        :param board: Board name.
        :type board: str
        :returns: Posts sorted newest first, with a status flag.
        :rtype: BoardSnapshot
        """
        try:
            path = self._board_path(board)
        except InvalidBoardName:
            return BoardSnapshot([], "missing")
        if not path.exists():
            return BoardSnapshot([], "missing")
        try:
            posts = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Board %r could not be read, treating as empty: %s", board, exc)
            return BoardSnapshot([], "corrupt")
        if not isinstance(posts, list):
            logger.warning("Board %r does not hold a list, treating as empty", board)
            return BoardSnapshot([], "corrupt")
        return BoardSnapshot(_sort_newest_first(posts), "ok")

    def load_posts(self, board):
        """Return a board's posts newest first; missing or corrupt boards are empty."""
        return self.read(board).posts

    def save_posts(self, board, posts):
        """Replace a board file with ``posts`` serialized as indented JSON.

        The payload is written to a temporary file beside the target and then
        renamed over it, so readers never see a partial file.

        :param board: Board name.
        :type board: str
        :param posts: Full post list to persist.
        :type posts: list[dict]
        :returns: ``None``.
        :rtype: None
        """
        path = self._board_path(board)
        payload = json.dumps(posts, indent=2, ensure_ascii=False)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=TEMP_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    @contextmanager
    def edit(self, board):
        """Hold the board's lock across a load/modify/save cycle.

        The file is rewritten on exit only when the caller called
        ``mark_dirty()`` and no exception escaped the block.

        :raises InvalidBoardName: Before locking, if the name has no file.
        """
        self._board_path(board)
        with self._lock_for(board):
            session = BoardEdit(board, self.load_posts(board))
            yield session
            if session.dirty:
                self.save_posts(board, session.posts)

    def list_boards(self):
        """List board names found in the data directory.

        Only a trailing ``.json`` is removed, so stray files show up under
        their full name. In-flight temporary files from :meth:`save_posts` are
        skipped.

        :returns: Board names sorted alphabetically.
        :rtype: list[str]
        :raises OSError: When the data directory cannot be listed.
        """
        names = []
        for entry in os.listdir(self.data_dir):
            if entry.startswith(".") and entry.endswith(TEMP_SUFFIX):
                continue
            if entry.endswith(BOARD_SUFFIX):
                entry = entry[: -len(BOARD_SUFFIX)]
            names.append(entry)
        return sorted(names)

    def create_board(self, board):
        """Create an empty board file unless one already exists.

        :param board: Board name, used verbatim as the file stem.
        :type board: str
        :returns: ``True`` if a new file was written.
        :rtype: bool
        :raises InvalidBoardName: If the name escapes the data directory.
        """
        path = self._board_path(board)
        with self._lock_for(board):
            if path.exists():
                return False
            self.save_posts(board, [])
        logger.info("Created board %r", board)
        return True
