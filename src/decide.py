# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import functools
from collections.abc import Awaitable, Collection
from dataclasses import dataclass
from typing import Any, Callable, Optional

from rich.markup import escape
from typing_extensions import TypeAlias

from src.console import console
from src.constants import DEFAULT_FETCH_TIMEOUT, DEFAULT_FUZZY_SIZE_THRESHOLD, REJECTION_REASONS, Decision
from src.decision_cache import DecisionCache, DecisionEntry, now_ms
from src.exceptions import TorrentCacheError
from src.prowlarr import ProwlarrResult
from src.searchee import Searchee
from src.torrent import Metafile, parse_torrent_from_url
from src.torrent_cache import TorrentFileCache

Fetcher: TypeAlias = Callable[[str], Awaitable[Optional[Metafile]]]


@dataclass(frozen=True)
class ResultAssessment:
    decision: Decision
    metafile: Optional[Metafile] = None
    cached: bool = False


def size_does_match(result_size: int, searchee: Searchee, fuzzy_size_threshold: float = DEFAULT_FUZZY_SIZE_THRESHOLD) -> bool:
    """Both bounds are inclusive."""
    length = searchee.length
    lower_bound = length - fuzzy_size_threshold * length
    upper_bound = length + fuzzy_size_threshold * length
    return lower_bound <= result_size <= upper_bound


def compare_file_trees(candidate: Metafile, searchee: Searchee) -> bool:
    """
    True when every file of the candidate exists in the searchee with the same
    path and the same length.

    The check is one-directional: a searchee holding extra files still matches.
    Paths are compared as plain strings.
    """
    searchee_files = {(f.path, f.length) for f in searchee.files}
    return all((f.path, f.length) in searchee_files for f in candidate.files)


def _cached_decision(entry: Optional[DecisionEntry]) -> Optional[Decision]:
    if not entry or not entry.get("decision"):
        return None
    try:
        return Decision(entry["decision"])
    except ValueError:
        return None


class Assessor:
    """
    Decides whether a search result is a cross-seedable copy of a searchee and
    remembers the decision.

    Only DOWNLOAD_FAILED is retried on later runs. A cached MATCH is served from
    the torrent cache without a download, re-assessed when the cached file is
    gone, and turned into INFO_HASH_ALREADY_EXISTS once its info hash shows up
    among the torrents the user already has. Every other rejection is final.
    """

    def __init__(
        self,
        config: dict[str, Any],
        decision_cache: DecisionCache,
        torrent_cache: TorrentFileCache,
        fetcher: Optional[Fetcher] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config
        default_config: dict[str, Any] = config.get("DEFAULT", {})
        self.fuzzy_size_threshold = float(default_config.get("fuzzy_size_threshold", DEFAULT_FUZZY_SIZE_THRESHOLD))
        self.fetch_timeout = float(default_config.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT))
        self.debug = bool(default_config.get("verbose", False))
        self.decision_cache = decision_cache
        self.torrent_cache = torrent_cache
        self.fetcher: Fetcher = fetcher or functools.partial(parse_torrent_from_url, timeout=self.fetch_timeout, debug=self.debug)
        self.clock = clock

    def _log_reason(self, result: ProwlarrResult, searchee: Searchee, decision: Decision, cached: bool) -> None:
        if decision is Decision.MATCH:
            if not cached:
                console.print(f"[bold green]{escape(searchee.name)} - found match on {escape(result.tracker)}: {escape(result.title)}")
            return
        if not self.debug:
            return
        reason = REJECTION_REASONS.get(decision, decision.value)
        if cached:
            reason = f"{reason} (cached)"
        console.print(f"[dim]{escape(searchee.name)} - no match for {escape(result.tracker)} torrent {escape(result.title)} - {reason}")

    async def _fetch(self, link: str) -> Optional[Metafile]:
        try:
            return await asyncio.wait_for(self.fetcher(link), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            if self.debug:
                console.print(f"[yellow]Timed out after {self.fetch_timeout}s downloading {escape(link)}")
            return None

    async def assess_result_uncached(self, result: ProwlarrResult, searchee: Searchee, info_hashes_to_exclude: Collection[str]) -> ResultAssessment:
        """Run every stage in order; the first failing stage decides."""
        if not size_does_match(result.size, searchee, self.fuzzy_size_threshold):
            return ResultAssessment(Decision.SIZE_MISMATCH)

        if not result.link:
            return ResultAssessment(Decision.NO_DOWNLOAD_LINK)

        info = await self._fetch(result.link)
        if info is None:
            return ResultAssessment(Decision.DOWNLOAD_FAILED)

        if info.info_hash in info_hashes_to_exclude:
            return ResultAssessment(Decision.INFO_HASH_ALREADY_EXISTS)

        if not compare_file_trees(info, searchee):
            return ResultAssessment(Decision.FILE_TREE_MISMATCH)

        return ResultAssessment(Decision.MATCH, info)

    async def _assess_and_save(
        self,
        result: ProwlarrResult,
        searchee: Searchee,
        info_hashes_to_exclude: Collection[str],
        previous: Optional[DecisionEntry],
    ) -> ResultAssessment:
        assessment = await self.assess_result_uncached(result, searchee, info_hashes_to_exclude)
        info_hash: Optional[str] = None
        if assessment.decision is Decision.MATCH and assessment.metafile is not None:
            info_hash = assessment.metafile.info_hash
            # the bytes must be on disk before the MATCH is recorded
            await self.torrent_cache.write(assessment.metafile)
        await self._save(searchee.name, result.guid, previous, assessment.decision, info_hash)
        self._log_reason(result, searchee, assessment.decision, cached=False)
        return assessment

    async def _save(
        self,
        searchee_name: str,
        guid: str,
        previous: Optional[DecisionEntry],
        decision: Decision,
        info_hash: Optional[str] = None,
    ) -> None:
        now = self.clock()
        entry: DecisionEntry = previous if previous is not None else {"firstSeen": now}
        entry.setdefault("firstSeen", now)
        entry["decision"] = decision.value
        entry["lastSeen"] = max(now, int(entry["firstSeen"]))
        if info_hash:
            entry["infoHash"] = info_hash
        await self.decision_cache.put(searchee_name, guid, entry)

    async def assess_result(self, result: ProwlarrResult, searchee: Searchee, info_hashes_to_exclude: Collection[str]) -> ResultAssessment:
        """
        Assess one search result against one searchee, consulting and updating
        the decision cache. Always returns a decision; only failures of the
        caches themselves propagate.
        """
        excluded = {info_hash.lower() for info_hash in info_hashes_to_exclude}

        async with self.decision_cache.key_lock(searchee.name, result.guid):
            cache_entry = self.decision_cache.get(searchee.name, result.guid)
            cached_decision = _cached_decision(cache_entry)
            cached_info_hash = str((cache_entry or {}).get("infoHash") or "").lower()

            if cached_decision is None or cached_decision is Decision.DOWNLOAD_FAILED:
                return await self._assess_and_save(result, searchee, excluded, cache_entry)

            if cached_decision is Decision.MATCH and cached_info_hash in excluded:
                # added to the client since the last run
                await self._save(searchee.name, result.guid, cache_entry, Decision.INFO_HASH_ALREADY_EXISTS)
                self._log_reason(result, searchee, Decision.INFO_HASH_ALREADY_EXISTS, cached=False)
                return ResultAssessment(Decision.INFO_HASH_ALREADY_EXISTS)

            if cached_decision is Decision.MATCH:
                if cached_info_hash and self.torrent_cache.has(cached_info_hash):
                    try:
                        info = await self.torrent_cache.read(cached_info_hash)
                    except TorrentCacheError as e:
                        console.print(f"[yellow]{escape(str(e))}, assessing again")
                    else:
                        await self._save(searchee.name, result.guid, cache_entry, Decision.MATCH)
                        return ResultAssessment(Decision.MATCH, info, cached=True)
                # cached file was removed, regenerate it
                return await self._assess_and_save(result, searchee, excluded, cache_entry)

            await self._save(searchee.name, result.guid, cache_entry, cached_decision)
            self._log_reason(result, searchee, cached_decision, cached=True)
            return ResultAssessment(cached_decision, cached=True)
