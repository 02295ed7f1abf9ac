# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import contextlib
import os

import aiofiles
import torf

from src.constants import CACHED_TORRENT_SUFFIX, TORRENT_CACHE_FOLDER
from src.exceptions import TorrentCacheError
from src.torrent import Metafile, parse_torrent_from_bytes


class TorrentFileCache:
    """
    Raw .torrent bytes of every confirmed match, one file per info hash.

    Entries are never evicted.
    """

    def __init__(self, cache_dir: str) -> None:
        self.torrent_dir = os.path.join(cache_dir, TORRENT_CACHE_FOLDER)

    def path_for(self, info_hash: str) -> str:
        return os.path.join(self.torrent_dir, f"{info_hash.lower()}{CACHED_TORRENT_SUFFIX}")

    def has(self, info_hash: str) -> bool:
        return os.path.isfile(self.path_for(info_hash))

    async def read(self, info_hash: str) -> Metafile:
        path = self.path_for(info_hash)
        async with aiofiles.open(path, "rb") as f:
            raw = await f.read()
        try:
            meta = parse_torrent_from_bytes(raw)
        except torf.TorfError as e:
            raise TorrentCacheError(f"Cached torrent {path} could not be parsed: {e}") from e
        if meta.info_hash != info_hash.lower():
            raise TorrentCacheError(f"Cached torrent {path} has info hash {meta.info_hash}")
        return meta

    async def write(self, meta: Metafile) -> None:
        path = self.path_for(meta.info_hash)
        tmp_path = f"{path}.tmp"
        try:
            await asyncio.to_thread(os.makedirs, self.torrent_dir, exist_ok=True)
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(meta.raw)
            await asyncio.to_thread(os.replace, tmp_path, path)
        except OSError as e:
            raise TorrentCacheError(f"Could not write cached torrent {path}: {e}") from e
        finally:
            with contextlib.suppress(FileNotFoundError):
                os.remove(tmp_path)
