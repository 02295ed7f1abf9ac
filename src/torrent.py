# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import glob
import io
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, cast

import httpx
import torf
from torf import Torrent

from src.console import console
from src.constants import DEFAULT_FETCH_TIMEOUT
from src.exceptions import CrossSeedError
from src.searchee import FileEntry


@dataclass(frozen=True)
class Metafile:
    """Parsed torrent metainfo together with the exact bytes it was parsed from."""

    info_hash: str
    name: str
    files: tuple[FileEntry, ...]
    raw: bytes = field(repr=False)

    @property
    def length(self) -> int:
        return sum(f.length for f in self.files)


def parse_torrent_from_bytes(raw: bytes) -> Metafile:
    """
    Parse bencoded torrent bytes.

    File paths are the torrent name joined with the in-torrent path by "/",
    so a single-file torrent has one file whose path is the torrent name.
    Raises torf.TorfError when the bytes are not a valid torrent.
    """
    torrent = Torrent.read_stream(io.BytesIO(raw))
    info = cast(dict[str, Any], torrent.metainfo["info"])
    name = str(info["name"])

    files: list[FileEntry] = []
    if "files" in info:
        for entry in cast(list[dict[str, Any]], info["files"]):
            parts = [str(part) for part in cast(list[Any], entry["path"])]
            files.append(FileEntry("/".join([name, *parts]), int(entry["length"])))
    else:
        files.append(FileEntry(name, int(info["length"])))

    return Metafile(info_hash=str(torrent.infohash).lower(), name=name, files=tuple(files), raw=raw)


def parse_torrent_from_filename(filename: str) -> Metafile:
    return parse_torrent_from_bytes(Path(filename).read_bytes())


async def parse_torrent_from_url(url: str, timeout: float = DEFAULT_FETCH_TIMEOUT, debug: bool = False) -> Optional[Metafile]:
    """
    Download and parse a .torrent file.

    Returns None on any network, HTTP or parse failure. A redirect to a magnet
    link counts as a failure since there is no metainfo to compare.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as session:
            response = await session.get(url)
            response.raise_for_status()
            content = response.content
    except httpx.UnsupportedProtocol:
        if debug:
            console.print(f"[yellow]{url} redirected to a link that is not a torrent file (magnet?)[/yellow]")
        return None
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        if debug:
            console.print(f"[yellow]Failed to download torrent file from {url}: {e}[/yellow]")
        return None

    try:
        return parse_torrent_from_bytes(content)
    except torf.TorfError as e:
        if debug:
            console.print(f"[yellow]Downloaded file from {url} is not a valid torrent: {e}[/yellow]")
        return None


def find_torrent_files(torrent_dir: str) -> list[str]:
    return sorted(glob.glob(os.path.join(glob.escape(torrent_dir), "*.torrent")))


def load_torrent_dir(torrent_dir: str) -> list[Metafile]:
    metafiles: list[Metafile] = []
    for filename in find_torrent_files(torrent_dir):
        try:
            metafiles.append(parse_torrent_from_filename(filename))
        except (OSError, torf.TorfError) as e:
            console.print(f"[yellow]Skipping unreadable torrent {filename}: {e}[/yellow]")
    return metafiles


async def load_torrent_dir_async(torrent_dir: str) -> list[Metafile]:
    return await asyncio.to_thread(load_torrent_dir, torrent_dir)


def get_info_hashes_to_exclude(metafiles: Iterable[Metafile]) -> set[str]:
    return {meta.info_hash for meta in metafiles}


async def validate_torrent_dir(torrent_dir: Optional[str]) -> None:
    if not torrent_dir:
        raise CrossSeedError("You need to specify a torrent directory (--torrent-dir or DEFAULT.torrent_dir).")
    if not os.path.isdir(torrent_dir):
        raise CrossSeedError(f"Torrent directory {torrent_dir} does not exist or is not a directory.")
    if not os.access(torrent_dir, os.R_OK):
        raise CrossSeedError(f"Torrent directory {torrent_dir} is not readable.")
