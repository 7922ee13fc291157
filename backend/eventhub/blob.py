# backend/eventhub/blob.py
"""Directory-backed blob container, served by the app under /uploads."""

from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging
import mimetypes
import os
import tempfile

logger = logging.getLogger(__name__)


# StaticFiles derives Content-Type from the suffix, so the suffix is the
# stored content-type metadata.
SUFFIXES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def suffix_for(content_type: str) -> str:
    return SUFFIXES.get(content_type) or mimetypes.guess_extension(content_type) or ""


class BlobStoreError(RuntimeError):
    """The blob store could not complete a write or delete."""


class LocalBlobStore:
    """
    One container (a sub-directory of `root`) of named objects.

    Writes go to a temp file in a staging directory next to `root` and are
    renamed into place with os.replace, so an object is either fully present
    under its final name or not present at all. The staging directory sits
    outside `root` because `root` is what gets served.
    """

    def __init__(
        self, root: Path, container: str, public_url: str, staging: Optional[Path] = None
    ) -> None:
        self.root = Path(root)
        self.container = container
        self.public_url = public_url.rstrip("/")
        self.path = self.root / container
        # same parent as root, so os.replace stays on one filesystem
        self.staging = Path(staging) if staging else self.root.parent / f".{self.root.name}-staging"

    def open(self) -> None:
        self.path.mkdir(parents=True, exist_ok=True)
        self.staging.mkdir(parents=True, exist_ok=True)

    def close(self) -> None:
        # nothing pooled; kept so the app lifespan treats both stores alike
        pass

    def url_for(self, name: str) -> str:
        return f"{self.public_url}/{self.container}/{name}"

    def exists(self, name: str) -> bool:
        return (self.path / name).is_file()

    def _check_name(self, name: str) -> None:
        if not name or "/" in name or name.startswith("."):
            raise BlobStoreError(f"invalid object name {name!r}")

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Store `data` under `key` plus the content-type suffix; return its URL."""
        self._check_name(key)
        name = key + suffix_for(content_type)

        final = self.path / name
        tmp_path = None
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            self.staging.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=self.staging, prefix=".upload-", suffix=".part", delete=False
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, final)
            tmp_path = None
        except OSError as exc:
            raise BlobStoreError(f"could not write {name}: {exc}") from exc
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

        logger.debug("stored %s (%d bytes, %s)", name, len(data), content_type)
        return self.url_for(name)

    def delete(self, name: str) -> bool:
        """Remove a stored object. Returns False if it was not there."""
        self._check_name(name)
        try:
            (self.path / name).unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise BlobStoreError(f"could not delete {name}: {exc}") from exc
        logger.debug("deleted %s", name)
        return True
