"""Read map files from a folder or a zip archive by name.

Both storages expose ``list()`` and ``read(name)``. Beat Saber itself is
case-insensitive about file names, so ``resolve`` matches names ignoring
case before reading.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path, PurePosixPath

from saberkit.errors import MissingResourceError


class MapStorage:
    """Shared name resolution for map storages."""

    description = "map storage"

    def list(self) -> list[str]:
        raise NotImplementedError

    def _read(self, name: str) -> bytes:
        raise NotImplementedError

    def resolve(self, name: str) -> str:
        """Return the stored name matching ``name`` case-insensitively.

        Raises:
            MissingResourceError: if nothing matches.
        """
        names = self.list()
        if name in names:
            return name
        wanted = name.casefold()
        for candidate in names:
            if candidate.casefold() == wanted:
                return candidate
        raise MissingResourceError(name, self.description)

    def read(self, name: str) -> bytes:
        return self._read(self.resolve(name))


class DirectoryStorage(MapStorage):
    """Files directly inside a map folder."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self.description = str(self.root)

    def list(self) -> list[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_file())

    def _read(self, name: str) -> bytes:
        return (self.root / name).read_bytes()


class ZipStorage(MapStorage):
    """Files inside a map zip, as downloaded from BeatSaver.

    Archives that wrap everything in a single top-level folder are read
    through that folder.
    """

    def __init__(self, source: Path | bytes, name: str = ""):
        if isinstance(source, bytes):
            self._archive = zipfile.ZipFile(io.BytesIO(source))
            self.description = name or "zip archive"
        else:
            self._archive = zipfile.ZipFile(source)
            self.description = name or str(source)

        files = [info.filename for info in self._archive.infolist() if not info.is_dir()]
        tops = {PurePosixPath(f).parts[0] for f in files}
        nested = len(tops) == 1 and all(len(PurePosixPath(f).parts) > 1 for f in files)
        self._members = {
            (str(PurePosixPath(*PurePosixPath(f).parts[1:])) if nested else f): f
            for f in files
        }

    def list(self) -> list[str]:
        return sorted(self._members)

    def _read(self, name: str) -> bytes:
        return self._archive.read(self._members[name])

    def close(self) -> None:
        self._archive.close()

    def __enter__(self) -> ZipStorage:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_storage(path: Path) -> MapStorage:
    """Pick a storage for a map folder or a .zip file."""
    path = Path(path)
    if path.is_dir():
        return DirectoryStorage(path)
    if path.suffix.lower() == ".zip":
        return ZipStorage(path)
    raise MissingResourceError(path.name, "a map folder or .zip archive")
