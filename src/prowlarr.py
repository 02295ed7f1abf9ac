# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import re
import urllib.parse
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, cast

import httpx
from rich.markup import escape

from src.console import console
from src.constants import EP_REGEX, MOVIE_REGEX, SEASON_REGEX
from src.exceptions import CrossSeedError
from src.redaction import Redaction

SEARCH_PATH = "/api/v1/search"
# searched for during validation so the results are empty
GIBBERISH = "bscdjpstabgdspjdasmomdsenqciadsnocdpsikncaodsnimcdqsanc"


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class ProwlarrResult:
    """
    The fields of a Prowlarr search result that matching needs.

    Prowlarr returns many more fields, most of them optional; `from_api` reads
    only these and never fails on missing or malformed values.
    """

    guid: str
    title: str
    indexer_id: int
    size: int
    link: Optional[str] = None
    indexer: Optional[str] = None

    @property
    def tracker(self) -> str:
        return self.indexer or str(self.indexer_id)

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> "ProwlarrResult":
        link = data.get("Link")
        link = str(link).strip() if link else None
        indexer = data.get("Indexer")
        return cls(
            guid=str(data.get("Guid") or link or ""),
            title=str(data.get("Title") or ""),
            indexer_id=_as_int(data.get("IndexerId")),
            size=_as_int(data.get("Size")),
            link=link or None,
            indexer=str(indexer) if indexer else None,
        )


def reformat_title_for_searching(name: str) -> str:
    """
    Reduce a release name to what indexers search well on: the show and episode
    (or season) for TV, the title and year for movies, else the whole name.
    """
    episode_match = EP_REGEX.match(name)
    season_match = SEASON_REGEX.match(name)
    movie_match = MOVIE_REGEX.match(name)
    if episode_match:
        full_match = episode_match.group(0)
    elif season_match:
        full_match = season_match.group(0)
    elif movie_match:
        full_match = movie_match.group(0)
    else:
        full_match = name
    full_match = re.sub(r"[.()\[\]]", " ", full_match)
    return re.sub(r"\s+", " ", full_match).strip()


class Prowlarr:
    def __init__(self, config: dict[str, Any]) -> None:
        self.config = config
        prowlarr_config: dict[str, Any] = config.get("PROWLARR", {})
        self.server_url = str(prowlarr_config.get("url", "") or "")
        self.api_key = str(prowlarr_config.get("api_key", "") or "")
        self.trackers = [str(t) for t in cast(list[Any], prowlarr_config.get("trackers") or [])]
        self.timeout = float(prowlarr_config.get("timeout", 60.0))
        self.debug = bool(config.get("DEFAULT", {}).get("verbose", False))

    def full_url(self, params: Mapping[str, Any]) -> str:
        return f"{self.server_url}{SEARCH_PATH}?{urllib.parse.urlencode(params, doseq=True)}"

    async def search(self, name: str, trackers: Optional[Sequence[str]] = None) -> list[ProwlarrResult]:
        """
        Search every configured indexer for a release name.

        Raises httpx.HTTPError / httpx.InvalidURL on connection or HTTP
        failures and ValueError when the response is not a JSON list.
        """
        params: dict[str, Any] = {
            "apikey": self.api_key,
            "query": reformat_title_for_searching(name),
            "indexerIds": list(trackers) if trackers is not None else self.trackers,
        }
        if self.debug:
            console.print(f"[cyan]Making search with query \"{escape(params['query'])}\"")

        async with httpx.AsyncClient(timeout=self.timeout) as session:
            response = await session.get(f"{self.server_url}{SEARCH_PATH}", params=params)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, list):
            raise ValueError(f"Unexpected Prowlarr response: expected a list, got {type(data).__name__}")

        results: list[ProwlarrResult] = []
        for item in cast(list[Any], data):
            if not isinstance(item, dict):
                continue
            result = ProwlarrResult.from_api(cast(dict[str, Any], item))
            if not result.guid:
                if self.debug:
                    console.print(f"[yellow]Skipping result without guid or link: {escape(result.title)}")
                continue
            results.append(result)
        return results

    async def validate_api(self) -> None:
        if self.server_url.endswith("/"):
            console.print("[yellow]Warning: Prowlarr server url should not end with '/'")

        try:
            await self.search(GIBBERISH)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            dummy_url = Redaction.redact_value(self.full_url({"apikey": self.api_key}))
            raise CrossSeedError(f"Could not reach Prowlarr at {dummy_url}") from e
