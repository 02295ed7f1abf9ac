# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import hashlib
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import torf

from src.exceptions import CrossSeedError
from src.searchee import FileEntry, create_searchee_from_metafile
from src.torrent import (
    get_info_hashes_to_exclude,
    load_torrent_dir,
    parse_torrent_from_bytes,
    parse_torrent_from_url,
    validate_torrent_dir,
)


def _mock_client(mock_client_class: MagicMock, get: AsyncMock) -> None:
    mock_client = AsyncMock()
    mock_client.get = get
    mock_client_class.return_value.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client_class.return_value.__aexit__ = AsyncMock(return_value=None)


def _response(content: bytes, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=content, request=httpx.Request("GET", "http://indexer.example/dl/1"))


class TestParseTorrent:
    def test_single_file_path_is_the_name(self, torrent_bytes: Any) -> None:
        meta = parse_torrent_from_bytes(torrent_bytes("Movie.2020.mkv", length=123_456))
        assert meta.name == "Movie.2020.mkv"
        assert meta.files == (FileEntry("Movie.2020.mkv", 123_456),)
        assert meta.length == 123_456
        assert len(meta.info_hash) == 40
        assert meta.info_hash == meta.info_hash.lower()

    def test_multi_file_paths_are_prefixed_with_name(self, torrent_bytes: Any) -> None:
        meta = parse_torrent_from_bytes(torrent_bytes("Show.S01", files=[("E01.mkv", 100), ("Subs/E01.srt", 5)]))
        assert [f.path for f in meta.files] == ["Show.S01/E01.mkv", "Show.S01/Subs/E01.srt"]
        assert meta.length == 105

    def test_searchee_mirrors_metafile(self, torrent_bytes: Any) -> None:
        meta = parse_torrent_from_bytes(torrent_bytes("Show.S01", files=[("E01.mkv", 100), ("E02.mkv", 200)]))
        searchee = create_searchee_from_metafile(meta)
        assert searchee.name == "Show.S01"
        assert searchee.files == meta.files
        assert searchee.length == 300

    def test_info_hash_is_sha1_of_raw_info_dict(self, torrent_bytes: Any) -> None:
        for raw in (torrent_bytes("Movie.2020.mkv", length=123_456), torrent_bytes("Show.S01", files=[("E01.mkv", 100), ("Subs/E01.srt", 5)])):
            start = raw.index(b"4:info") + len(b"4:info")
            # the info dict is the last key of the top-level dict
            raw_info = raw[start:-1]
            assert parse_torrent_from_bytes(raw).info_hash == hashlib.sha1(raw_info).hexdigest()

    def test_garbage_raises_torf_error(self) -> None:
        with pytest.raises(torf.TorfError):
            parse_torrent_from_bytes(b"this is not bencode")


class TestParseTorrentFromUrl:
    @patch("httpx.AsyncClient")
    def test_downloads_and_parses(self, mock_client_class: MagicMock, torrent_bytes: Any) -> None:
        raw = torrent_bytes("Movie.2020.mkv", length=1_000)
        _mock_client(mock_client_class, AsyncMock(return_value=_response(raw)))
        meta = asyncio.run(parse_torrent_from_url("http://indexer.example/dl/1"))
        assert meta is not None
        assert meta.raw == raw

    @patch("httpx.AsyncClient")
    def test_http_error_returns_none(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(return_value=_response(b"nope", status_code=404)))
        assert asyncio.run(parse_torrent_from_url("http://indexer.example/dl/1")) is None

    @patch("httpx.AsyncClient")
    def test_connection_error_returns_none(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(side_effect=httpx.ConnectError("refused")))
        assert asyncio.run(parse_torrent_from_url("http://indexer.example/dl/1")) is None

    @patch("httpx.AsyncClient")
    def test_magnet_redirect_returns_none(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(side_effect=httpx.UnsupportedProtocol("magnet")))
        assert asyncio.run(parse_torrent_from_url("http://indexer.example/dl/1", debug=True)) is None

    @patch("httpx.AsyncClient")
    def test_invalid_torrent_returns_none(self, mock_client_class: MagicMock) -> None:
        _mock_client(mock_client_class, AsyncMock(return_value=_response(b"<html>login</html>")))
        assert asyncio.run(parse_torrent_from_url("http://indexer.example/dl/1")) is None


class TestTorrentDir:
    def test_load_skips_unreadable_files(self, tmp_path: Path, torrent_bytes: Any) -> None:
        (tmp_path / "b.torrent").write_bytes(torrent_bytes("B", length=10))
        (tmp_path / "a.torrent").write_bytes(torrent_bytes("A", length=10))
        (tmp_path / "broken.torrent").write_bytes(b"broken")
        (tmp_path / "notes.txt").write_text("ignored")
        metafiles = load_torrent_dir(str(tmp_path))
        assert [m.name for m in metafiles] == ["A", "B"]
        assert get_info_hashes_to_exclude(metafiles) == {m.info_hash for m in metafiles}

    def test_validate_missing_dir(self, tmp_path: Path) -> None:
        with pytest.raises(CrossSeedError):
            asyncio.run(validate_torrent_dir(str(tmp_path / "missing")))

    def test_validate_unset_dir(self) -> None:
        with pytest.raises(CrossSeedError):
            asyncio.run(validate_torrent_dir(None))

    def test_validate_existing_dir(self, tmp_path: Path) -> None:
        asyncio.run(validate_torrent_dir(str(tmp_path)))
