# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.torrent import Metafile


@dataclass(frozen=True)
class FileEntry:
    """A single file of a torrent: path relative to the download root, and size in bytes."""

    path: str
    length: int


@dataclass(frozen=True)
class Searchee:
    """A torrent the user already holds, searched for on other indexers."""

    name: str
    files: tuple[FileEntry, ...]

    @property
    def length(self) -> int:
        return sum(f.length for f in self.files)

    @classmethod
    def from_files(cls, name: str, files: Iterable[tuple[str, int]]) -> "Searchee":
        return cls(name=name, files=tuple(FileEntry(path, length) for path, length in files))


def create_searchee_from_metafile(meta: "Metafile") -> Searchee:
    return Searchee(name=meta.name, files=meta.files)
