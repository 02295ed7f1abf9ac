# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import re
import warnings
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.constants import MOVIE_REGEX
from src.exceptions import CrossSeedError
from src.prowlarr import GIBBERISH, Prowlarr, ProwlarrResult, reformat_title_for_searching


def _config(**prowlarr: Any) -> dict[str, Any]:
    return {
        "DEFAULT": {"verbose": False},
        "PROWLARR": {"url": "http://localhost:9696", "api_key": "secretkey123", "trackers": [1, 4], **prowlarr},
    }


def _mock_client(mock_client_class: MagicMock, get: AsyncMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.get = get
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)
    return mock_client


def _response(payload: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request("GET", "http://localhost:9696/api/v1/search"))


class TestReformatTitle:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("The.Show.S01E02.1080p.WEB-DL", "The Show S01E02"),
            ("The.Show.S02.1080p.BluRay", "The Show S02"),
            ("Some.Movie.2019.1080p.BluRay.x264", "Some Movie 2019"),
            ("Some Movie (2019) [1080p]", "Some Movie 2019"),
            ("Some Movie [2019] 720p", "Some Movie 2019"),
            ("no_pattern_here", "no_pattern_here"),
        ],
    )
    def test_reformat(self, name: str, expected: str) -> None:
        assert reformat_title_for_searching(name) == expected

    def test_movie_pattern_compiles_without_warnings(self) -> None:
        re.purge()
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            re.compile(MOVIE_REGEX.pattern, MOVIE_REGEX.flags)


class TestProwlarrResult:
    def test_from_api(self) -> None:
        result = ProwlarrResult.from_api({
            "Guid": "https://indexer.example/details/1",
            "Title": "Some.Movie.2019",
            "IndexerId": 4,
            "Indexer": "Indexer",
            "Size": 1234,
            "Link": "https://indexer.example/dl/1",
            "Seeders": 10,
        })
        assert result == ProwlarrResult("https://indexer.example/details/1", "Some.Movie.2019", 4, 1234, "https://indexer.example/dl/1", "Indexer")
        assert result.tracker == "Indexer"

    def test_missing_fields_are_tolerated(self) -> None:
        result = ProwlarrResult.from_api({"Title": "x", "Size": "oops", "IndexerId": None})
        assert result.guid == ""
        assert result.link is None
        assert result.size == 0
        assert result.tracker == "0"

    def test_guid_falls_back_to_link(self) -> None:
        result = ProwlarrResult.from_api({"Link": " https://indexer.example/dl/2 ", "Size": 5})
        assert result.guid == "https://indexer.example/dl/2"


class TestProwlarrSearch:
    @patch("httpx.AsyncClient")
    def test_search_sends_query_and_indexers(self, mock_client_class: MagicMock) -> None:
        get = AsyncMock(return_value=_response([
            {"Guid": "g1", "Title": "The.Show.S01E02.720p", "IndexerId": 1, "Size": 10, "Link": "http://x/1"},
            {"Title": "no guid or link", "IndexerId": 1, "Size": 10},
            "not a dict",
        ]))
        _mock_client(mock_client_class, get)

        results = asyncio.run(Prowlarr(_config()).search("The.Show.S01E02.1080p.WEB-DL"))

        assert [r.guid for r in results] == ["g1"]
        url = get.await_args.args[0]
        params = get.await_args.kwargs["params"]
        assert url == "http://localhost:9696/api/v1/search"
        assert params == {"apikey": "secretkey123", "query": "The Show S01E02", "indexerIds": ["1", "4"]}

    @patch("httpx.AsyncClient")
    def test_search_rejects_non_list(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(return_value=_response({"error": "bad"})))
        with pytest.raises(ValueError):
            asyncio.run(Prowlarr(_config()).search("x"))

    @patch("httpx.AsyncClient")
    def test_search_raises_on_http_error(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(return_value=_response([], status_code=401)))
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(Prowlarr(_config()).search("x"))


class TestValidateApi:
    @patch("httpx.AsyncClient")
    def test_valid(self, mock_client_class: MagicMock) -> None:
        get = AsyncMock(return_value=_response([]))
        _mock_client(mock_client_class, get)
        asyncio.run(Prowlarr(_config()).validate_api())
        assert get.await_args.kwargs["params"]["query"] == GIBBERISH

    @patch("httpx.AsyncClient")
    def test_unreachable_raises_without_leaking_key(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(side_effect=httpx.ConnectError("refused")))
        with pytest.raises(CrossSeedError) as excinfo:
            asyncio.run(Prowlarr(_config()).validate_api())
        assert "secretkey123" not in str(excinfo.value)
        assert "localhost:9696" in str(excinfo.value)
