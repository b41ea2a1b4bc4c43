"""Route handlers for boards, posts, comments and reactions."""

import re
from urllib.parse import quote

from flask import (
    Blueprint,
    current_app,
    redirect,
    render_template,
    request,
    send_from_directory,
)

bp = Blueprint('pages', __name__)

try:
    from html_sanitizer import sanitize_html
    from post_store import (
        InvalidBoardName,
        add_comment,
        bump_counter,
        find_post,
        new_comment,
        new_post,
        search_posts,
    )
except ModuleNotFoundError:
    from src.html_sanitizer import sanitize_html
    from src.post_store import (
        InvalidBoardName,
        add_comment,
        bump_counter,
        find_post,
        new_comment,
        new_post,
        search_posts,
    )

# Sentinel for a reply index that was supplied but is not an integer.
_INVALID_INDEX = -1
# Optional whitespace and sign, then digits; anything after them is ignored.
_LEADING_INT = re.compile(r"[ \t\n\r\f\v]*([+-]?[0-9]+)")


def _store():
    """Return the post store configured on the running app."""
    return current_app.config["POST_STORE"]


def _uploads():
    """Return the upload store configured on the running app."""
    return current_app.config["UPLOAD_STORE"]


def _leading_int(raw):
    """Return the integer prefix of ``raw`` (``"123abc"`` gives 123), else ``None``."""
    match = _LEADING_INT.match(raw or "")
    if match is None:
        return None
    return int(match.group(1))


def _parse_post_id(raw):
    """Parse a post id from the URL; ids without a leading number match nothing.

    :param raw: Path segment captured for ``post_id``.
    :type raw: str
    :returns: Integer id, or ``None`` when unparseable.
    :rtype: int | None
    """
    return _leading_int(raw)


def _parse_reply_index(raw):
    """Interpret the ``replyToCommentIndex`` form field.

    An absent or blank field means a top-level comment (``None``). Anything
    without a leading integer maps to an index no comment can have.
    """
    if raw is None or not raw.strip():
        return None
    index = _leading_int(raw)
    return _INVALID_INDEX if index is None else index


def _board_url(board):
    return f'/board/{quote(board, safe="")}'


def _post_url(board, post_id):
    return f'{_board_url(board)}/post/{quote(str(post_id), safe="")}'


@bp.route('/')
def index():
    """Render the list of boards found in the data directory.

    :returns: Rendered HTML, or a plain 500 when the directory is unreadable.
    :rtype: str | tuple[str, int]
    """
    try:
        boards = _store().list_boards()
    except OSError:
        current_app.logger.exception('Failed to list boards')
        return 'Error reading boards', 500
    return render_template('pages/index.html', boards=boards, active='index')


@bp.route('/board/<board>')
def board_page(board):
    posts = _store().load_posts(board)
    return render_template('pages/board.html', board=board, posts=posts, query=None)


@bp.route('/board/<board>/search')
def board_search(board):
    """Render a board filtered to posts whose title or content contains ``q``.

    :param board: Board name from the URL.
    :type board: str
    :returns: Rendered board HTML with the filtered posts.
    :rtype: str
    """
    query = request.args.get('q', '')
    posts = search_posts(_store().load_posts(board), query)
    return render_template('pages/board.html', board=board, posts=posts, query=query)


@bp.route('/board/<board>/post/<post_id>')
def post_page(board, post_id):
    """Render a single post; an unknown id renders the page without a post."""
    post = find_post(_store().load_posts(board), _parse_post_id(post_id))
    return render_template('pages/post.html', board=board, post=post)


@bp.route('/board/<board>/new')
def new_post_form(board):
    return render_template('pages/new.html', board=board)


@bp.route('/board/<board>/posts', methods=['POST'])
def create_post(board):
    """Store an optional attachment and append a new post to the board.

    :param board: Board name from the URL.
    :type board: str
    :returns: Redirect to the board page.
    :rtype: flask.Response
    """
    file_url = _uploads().save(request.files.get('file'))
    post = new_post(
        title=request.form.get('title', ''),
        content=sanitize_html(request.form.get('content')),
        file_url=file_url,
    )
    try:
        with _store().edit(board) as session:
            session.posts.append(post)
            session.mark_dirty()
    except InvalidBoardName:
        current_app.logger.warning('Rejected post for board %r', board)
        return redirect(_board_url(board))
    current_app.logger.info('New post %s on board %r', post['id'], board)
    return redirect(_board_url(board))


@bp.route('/board/<board>/post/<post_id>/comment', methods=['POST'])
def create_comment(board, post_id):
    """Add a comment, or a reply to an existing top-level comment.

    Unknown posts and reply indexes outside the comment list leave the board
    untouched; the client is redirected to the post page either way.

    :param board: Board name from the URL.
    :type board: str
    :param post_id: Post id path segment.
    :type post_id: str
    :returns: Redirect to the post page.
    :rtype: flask.Response
    """
    reply_to = _parse_reply_index(request.form.get('replyToCommentIndex'))
    try:
        with _store().edit(board) as session:
            post = find_post(session.posts, _parse_post_id(post_id))
            if post is not None:
                comment = new_comment(sanitize_html(request.form.get('content')))
                if add_comment(post, comment, reply_to):
                    session.mark_dirty()
    except InvalidBoardName:
        current_app.logger.warning('Rejected comment for board %r', board)
    return redirect(_post_url(board, post_id))


def _react(board, post_id, field):
    """Increment a reaction counter on a post if it exists, then go back to the board."""
    try:
        with _store().edit(board) as session:
            post = find_post(session.posts, _parse_post_id(post_id))
            if post is not None:
                bump_counter(post, field)
                session.mark_dirty()
    except InvalidBoardName:
        current_app.logger.warning('Rejected %s for board %r', field, board)
    return redirect(_board_url(board))


@bp.route('/board/<board>/post/<post_id>/like', methods=['POST'])
def like_post(board, post_id):
    return _react(board, post_id, 'likes')


@bp.route('/board/<board>/post/<post_id>/dislike', methods=['POST'])
def dislike_post(board, post_id):
    return _react(board, post_id, 'dislikes')


@bp.route('/newboard')
def new_board_form():
    return render_template('pages/newboard.html', active='newboard')


@bp.route('/newboard', methods=['POST'])
def create_board():
    """Create an empty board file for ``boardName`` unless it already exists.

    :returns: Redirect to the new board, or to the index when the name would
        leave the data directory.
    :rtype: flask.Response
    """
    board = request.form.get('boardName', '')
    try:
        _store().create_board(board)
    except InvalidBoardName:
        current_app.logger.warning('Rejected board name %r', board)
        return redirect('/')
    return redirect(_board_url(board))


@bp.route('/rules')
def rules():
    return render_template('pages/rules.html', active='rules')


@bp.route('/uploads/<path:filename>')
def uploaded_file(filename):
    """Serve a stored attachment by its original filename."""
    return send_from_directory(_uploads().upload_dir.resolve(), filename)
