"""Flask application factory for the bulletin board."""

from pathlib import Path

from flask import Flask

from board import pages

try:
    from app_config import get_data_dir, get_max_upload_bytes, get_upload_dir
    from post_store import PostStore, parse_timestamp
    from upload_store import UploadStore
except ModuleNotFoundError:
    from src.app_config import get_data_dir, get_max_upload_bytes, get_upload_dir
    from src.post_store import PostStore, parse_timestamp
    from src.upload_store import UploadStore


def _ensure_directory(path):
    """Create ``path`` (and parents) when it does not exist yet."""
    Path(path).mkdir(parents=True, exist_ok=True)


def _display_time(value):
    """Jinja filter: show a stored ``createdAt`` as ``YYYY-MM-DD HH:MM`` UTC."""
    moment = parse_timestamp(value)
    if moment.year == 1:
        return ""
    return moment.strftime("%Y-%m-%d %H:%M")


def create_app(*, test_config=None, store=None, uploads=None):
    """Create and configure the Flask application.

    Directory settings come from the environment unless ``test_config``
    overrides ``DATA_DIR`` / ``UPLOAD_DIR``. Both directories are created on
    startup.

    :param test_config: Optional config dictionary applied after defaults.
    :type test_config: dict | None
    :param store: Optional pre-built post store.
    :type store: post_store.PostStore | None
    :param uploads: Optional pre-built upload store.
    :type uploads: upload_store.UploadStore | None
    :returns: Configured Flask app instance.
    :rtype: flask.Flask
    """
    app = Flask(__name__)
    app.config.update(
        DATA_DIR=str(get_data_dir()),
        UPLOAD_DIR=str(get_upload_dir()),
        MAX_CONTENT_LENGTH=get_max_upload_bytes(),
    )
    if test_config:
        app.config.update(test_config)

    _ensure_directory(app.config["DATA_DIR"])
    _ensure_directory(app.config["UPLOAD_DIR"])

    app.config["POST_STORE"] = store if store is not None else PostStore(app.config["DATA_DIR"])
    app.config["UPLOAD_STORE"] = (
        uploads if uploads is not None else UploadStore(app.config["UPLOAD_DIR"])
    )

    app.jinja_env.filters["display_time"] = _display_time
    app.register_blueprint(pages.bp)
    return app
