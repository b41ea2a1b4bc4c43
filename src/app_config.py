"""Environment-driven configuration for the bulletin board server."""

import os
from pathlib import Path

DEFAULT_PORT = 3000
DEFAULT_MAX_UPLOAD_MB = 10


def _load_env_file(path: Path) -> None:
    """Load KEY=VALUE pairs from a .env-style file into os.environ.

    Existing environment variables are preserved.

    :param path: Filesystem path to the ``.env``-style file.
    :type path: pathlib.Path
    :returns: ``None``.
    :rtype: None
    """
    if not path.exists():
        return
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _autoload_env() -> None:
    """Load a project-level .env when variables were not pre-exported."""
    src_dir = Path(__file__).resolve().parent
    _load_env_file(src_dir.parent / ".env")


_autoload_env()


def _int_env(name: str, default: int) -> int:
    """Read an integer environment variable, falling back on blanks and junk."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_port() -> int:
    """Return the HTTP listen port.

    :returns: ``PORT`` from the environment, or ``3000``.
    :rtype: int
    """
    return _int_env("PORT", DEFAULT_PORT)


def get_data_dir() -> Path:
    """Return the directory holding one ``<board>.json`` file per board.

    :returns: ``BOARD_DATA_DIR`` or ``./data``.
    :rtype: pathlib.Path
    """
    return Path(os.getenv("BOARD_DATA_DIR", "data"))


def get_upload_dir() -> Path:
    """Return the directory uploaded attachments are written to.

    :returns: ``BOARD_UPLOAD_DIR`` or ``./public/uploads``.
    :rtype: pathlib.Path
    """
    return Path(os.getenv("BOARD_UPLOAD_DIR", os.path.join("public", "uploads")))


def get_max_upload_bytes() -> int:
    """Return the request size ceiling applied to multipart uploads.

    :returns: ``BOARD_MAX_UPLOAD_MB`` megabytes expressed in bytes.
    :rtype: int
    """
    return _int_env("BOARD_MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB) * 1024 * 1024


def is_debug() -> bool:
    return os.getenv("FLASK_DEBUG", "0").strip().lower() in {"1", "true", "yes", "on"}
