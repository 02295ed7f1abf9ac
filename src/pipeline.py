# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import os
import re
from collections.abc import Collection, Iterable
from typing import Any

import aiofiles
import httpx
from rich.markup import escape

from src.console import console
from src.constants import DEFAULT_DELAY, Decision
from src.decide import Assessor
from src.prowlarr import Prowlarr
from src.searchee import Searchee, create_searchee_from_metafile
from src.torrent import Metafile, get_info_hashes_to_exclude, load_torrent_dir_async


def sanitize_filename(filename: str) -> str:
    """Replace characters that are invalid in filenames on common filesystems"""
    return re.sub(r'[<>:"/\\|?*]', '_', filename)


def dedupe_searchees(metafiles: Iterable[Metafile]) -> list[Searchee]:
    """One searchee per torrent name; the first torrent with a given name wins."""
    seen: set[str] = set()
    searchees: list[Searchee] = []
    for meta in metafiles:
        if meta.name in seen:
            continue
        seen.add(meta.name)
        searchees.append(create_searchee_from_metafile(meta))
    return searchees


class CrossSeedPipeline:
    """Search every torrent in the torrent directory on Prowlarr and act on the matches."""

    def __init__(self, config: dict[str, Any], prowlarr: Prowlarr, assessor: Assessor) -> None:
        self.config = config
        default_config: dict[str, Any] = config.get("DEFAULT", {})
        self.torrent_dir = str(default_config.get("torrent_dir") or "")
        self.output_dir = str(default_config.get("output_dir") or ".")
        self.action = str(default_config.get("action") or "save")
        self.delay = float(default_config.get("delay", DEFAULT_DELAY))
        self.debug = bool(default_config.get("verbose", False))
        self.prowlarr = prowlarr
        self.assessor = assessor

    def output_path(self, meta: Metafile, tracker: str) -> str:
        filename = sanitize_filename(f"[{tracker}][cross-seed]{meta.name}.torrent")
        return os.path.join(self.output_dir, filename)

    async def save_torrent(self, meta: Metafile, tracker: str) -> str:
        await asyncio.to_thread(os.makedirs, self.output_dir, exist_ok=True)
        path = self.output_path(meta, tracker)
        async with aiofiles.open(path, "wb") as f:
            await f.write(meta.raw)
        return path

    async def perform_action(self, meta: Metafile, tracker: str) -> None:
        if self.action == "inject":
            console.print("[yellow]Injecting into a torrent client is not supported, saving the torrent instead")
        path = await self.save_torrent(meta, tracker)
        if self.debug:
            console.print(f"[cyan]Saved {escape(path)}")

    async def find_on_other_sites(self, searchee: Searchee, info_hashes_to_exclude: Collection[str]) -> int:
        """Returns the number of matches found for the searchee."""
        try:
            results = await self.prowlarr.search(searchee.name)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            console.print(f"[red]Error searching for {escape(searchee.name)}: {escape(str(e))}")
            return 0

        matches = 0
        for result in results:
            assessment = await self.assessor.assess_result(result, searchee, info_hashes_to_exclude)
            if assessment.decision is Decision.MATCH and assessment.metafile is not None:
                await self.perform_action(assessment.metafile, result.tracker)
                matches += 1
        return matches

    async def run(self, offset: int = 0) -> int:
        metafiles = await load_torrent_dir_async(self.torrent_dir)
        info_hashes_to_exclude = get_info_hashes_to_exclude(metafiles)
        all_searchees = dedupe_searchees(metafiles)
        searchees = all_searchees[offset:]
        total = len(all_searchees)
        console.print(f"Found {total} torrents, {len(searchees)} suitable to search for matches")

        total_found = 0
        for i, searchee in enumerate(searchees):
            if i > 0 and self.delay > 0:
                await asyncio.sleep(self.delay)
            console.print(f"Searching for {escape(searchee.name)} ({i + 1 + offset}/{total})")
            total_found += await self.find_on_other_sites(searchee, info_hashes_to_exclude)

        console.print(f"[bold green]Done! Found {total_found} cross-seeds from {len(searchees)} original torrents")
        return total_found
