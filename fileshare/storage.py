import logging
import random
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from fileshare.errors import InvalidIdentifier, NoFileProvided, NotFound, SizeLimitExceeded, StorageUnavailable
from fileshare.models import FileInfo, UploadedFile

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_MIMETYPE = "application/octet-stream"


def download_url(file_id: str) -> str:
    return f"/api/download/{file_id}"


def view_url(file_id: str) -> str:
    return f"/api/view/{file_id}"


def generate_file_id(original_name: str) -> str:
    """Build `<unix-millis>-<random>` plus the original extension."""
    unique = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    return unique + Path(original_name).suffix


class FileStore:
    """Flat directory of uploaded files, keyed by generated filename."""

    def __init__(self, root_dir: str | Path):
        self.root = Path(root_dir)

    @classmethod
    def open(cls, root_dir: str | Path) -> "FileStore":
        store = cls(root_dir)
        store.init()
        return store

    def init(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, file_id: str) -> Path:
        """Map an id to a path that is guaranteed to sit directly under the root."""
        if not file_id or "\x00" in file_id:
            raise InvalidIdentifier()
        root = self.root.resolve()
        try:
            candidate = (root / file_id).resolve()
        except ValueError as exc:
            raise InvalidIdentifier() from exc
        if candidate.parent != root:
            logger.warning("rejected file id outside storage root: %r", file_id)
            raise InvalidIdentifier()
        return candidate

    def _existing(self, file_id: str) -> Path:
        path = self.resolve(file_id)
        try:
            exists = path.is_file()
        except OSError as exc:
            # e.g. ENAMETOOLONG, no such name can be stored
            raise NotFound() from exc
        if not exists:
            raise NotFound()
        return path

    def _discard(self, target: Path) -> None:
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("could not remove partial upload %s: %s", target, exc)

    def _info(self, path: Path) -> FileInfo:
        stats = path.stat()
        return FileInfo(
            id=path.name,
            filename=path.name,
            size=stats.st_size,
            upload_date=datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc),
            download_url=download_url(path.name),
            view_url=view_url(path.name),
        )

    def put(
        self,
        *,
        source: BinaryIO | None,
        original_name: str | None,
        mimetype: str | None,
        max_size_bytes: int,
    ) -> UploadedFile:
        if source is None or not original_name:
            raise NoFileProvided()

        file_id = generate_file_id(original_name)
        target = self.root / file_id

        total = 0
        try:
            with target.open("wb") as f:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > max_size_bytes:
                        raise SizeLimitExceeded()
                    f.write(chunk)
        except Exception as exc:
            self._discard(target)
            if isinstance(exc, OSError):
                logger.error("failed to store upload %s: %s", file_id, exc)
                raise StorageUnavailable("failed to store uploaded file") from exc
            raise

        logger.info("stored %s (%s, %d bytes)", file_id, original_name, total)
        return UploadedFile(
            id=file_id,
            original_name=original_name,
            size=total,
            mimetype=mimetype or DEFAULT_MIMETYPE,
            upload_date=datetime.now(timezone.utc),
            download_url=download_url(file_id),
        )

    def list(self) -> list[FileInfo]:
        try:
            entries = list(self.root.iterdir())
        except OSError as exc:
            logger.error("cannot read storage directory %s: %s", self.root, exc)
            raise StorageUnavailable() from exc

        files = []
        for entry in entries:
            try:
                if entry.is_file() and not entry.is_symlink():
                    files.append(self._info(entry))
            except FileNotFoundError:
                # deleted between listing and stat
                continue
        return files

    def get(self, file_id: str) -> Path:
        return self._existing(file_id)

    def stat(self, file_id: str) -> FileInfo:
        path = self._existing(file_id)
        try:
            return self._info(path)
        except FileNotFoundError as exc:
            raise NotFound() from exc

    def delete(self, file_id: str) -> None:
        path = self._existing(file_id)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise NotFound() from exc
        logger.info("deleted %s", file_id)
