# backend/utils/storage.py
import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, Optional

from config import settings

logger = logging.getLogger(__name__)

IMAGE_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
VIDEO_TYPES = {"video/mp4", "video/quicktime", "video/x-msvideo", "video/x-ms-wmv"}


class LocalFileStorage:
    """Blob store backed by a directory served under ``url_prefix``.

    ``store`` returns the public URL of the saved file; ``delete`` accepts
    such a URL and ignores anything it did not hand out itself.
    """

    def __init__(self, root: str, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = "/" + url_prefix.strip("/")

    def store(self, stream: BinaryIO, filename: str, folder: str = "products") -> str:
        ext = Path(filename or "").suffix.lower() or ".bin"
        unique_filename = f"{uuid.uuid4()}{ext}"
        target_dir = self.root / folder
        target_dir.mkdir(parents=True, exist_ok=True)
        with open(target_dir / unique_filename, "wb") as buffer:
            shutil.copyfileobj(stream, buffer)
        return f"{self.url_prefix}/{folder}/{unique_filename}"

    def delete(self, url: Optional[str]) -> bool:
        path = self._path_for(url)
        if path is None or not path.exists():
            return False
        try:
            path.unlink()
        except OSError:
            logger.warning("Could not remove stored file %s", path, exc_info=True)
            return False
        return True

    def _path_for(self, url: Optional[str]) -> Optional[Path]:
        if not url or not url.startswith(self.url_prefix + "/"):
            return None
        relative = url[len(self.url_prefix) + 1:]
        path = (self.root / relative).resolve()
        # Refuse anything that escapes the upload root
        if self.root.resolve() not in path.parents:
            return None
        return path


def get_storage() -> LocalFileStorage:
    return LocalFileStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
