# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import math
from collections.abc import Sequence
from typing import Any, Callable, Optional

import bencodepy
import pytest

from src.torrent import Metafile, parse_torrent_from_bytes

MIN_PIECE_LENGTH = 16384
MAX_PIECES = 1000


def build_torrent_bytes(
    name: str,
    files: Optional[Sequence[tuple[str, int]]] = None,
    length: Optional[int] = None,
    source: Optional[str] = None,
) -> bytes:
    """
    Bencode a minimal, valid torrent.

    `files` holds (path inside the torrent, length) pairs for a multi-file
    torrent; otherwise `length` makes a single-file one. `source` only changes
    the info hash.
    """
    info: dict[bytes, Any] = {b"name": name.encode()}
    if files is not None:
        info[b"files"] = [
            {b"length": file_length, b"path": [part.encode() for part in path.split("/")]}
            for path, file_length in files
        ]
        total = sum(file_length for _, file_length in files)
    else:
        total = int(length or 1)
        info[b"length"] = total

    piece_length = MIN_PIECE_LENGTH
    while math.ceil(total / piece_length) > MAX_PIECES:
        piece_length *= 2
    info[b"piece length"] = piece_length
    info[b"pieces"] = b"\x00" * 20 * math.ceil(total / piece_length)
    if source:
        info[b"source"] = source.encode()

    # bencoded dicts must have sorted keys for the info hash to match real clients
    return bencodepy.encode({b"announce": b"http://tracker.example/announce", b"info": dict(sorted(info.items()))})


@pytest.fixture
def torrent_bytes() -> Callable[..., bytes]:
    return build_torrent_bytes


@pytest.fixture
def make_metafile() -> Callable[..., Metafile]:
    def _make(*args: Any, **kwargs: Any) -> Metafile:
        return parse_torrent_from_bytes(build_torrent_bytes(*args, **kwargs))
    return _make
