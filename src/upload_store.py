"""Disk storage for post attachments."""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _original_name(filename):
    """Return the client filename without any directory components."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    if name in {"", ".", ".."}:
        return None
    return name


class UploadStore:
    """Write uploaded files under their original name and hand back a public URL.

    Files sharing a name overwrite each other; the last upload wins.
    """

    def __init__(self, upload_dir, url_prefix="/uploads"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def path_for(self, name):
        return self.upload_dir / name

    def save(self, storage):
        """Persist a Werkzeug ``FileStorage`` and return its public path.

        :param storage: Uploaded file from ``request.files``, or ``None``.
        :type storage: werkzeug.datastructures.FileStorage | None
        :returns: ``/uploads/<name>`` when a file was stored, else ``None``.
        :rtype: str | None
        """
        if storage is None:
            return None
        name = _original_name(storage.filename)
        if name is None:
            return None
        target = self.path_for(name)
        if target.exists():
            logger.info("Upload %r replaces an existing file", name)
        storage.save(str(target))
        return f"{self.url_prefix}/{name}"
