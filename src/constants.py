# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import re
from enum import Enum

EP_REGEX = re.compile(r"^(?P<title>.+)[. ](?P<season>S\d+)(?P<episode>E\d+)", re.IGNORECASE)
SEASON_REGEX = re.compile(r"^(?P<title>.+)[. ](?P<season>S\d+)(?:\s?-\s?(?P<seasonmax>S?\d+))?(?!E\d+)", re.IGNORECASE)
MOVIE_REGEX = re.compile(r"^(?P<title>.+)[. ][\[(]?(?P<year>\d{4})[)\]]?(?![pi])", re.IGNORECASE)

TORRENT_CACHE_FOLDER = "torrent_cache"
DECISION_CACHE_FILE = "cache.json"
CACHED_TORRENT_SUFFIX = ".cached.torrent"

DEFAULT_FUZZY_SIZE_THRESHOLD = 0.02
DEFAULT_DELAY = 10
DEFAULT_FETCH_TIMEOUT = 30.0

ACTIONS = ("save", "inject")


class Decision(str, Enum):
    MATCH = "MATCH"
    SIZE_MISMATCH = "SIZE_MISMATCH"
    NO_DOWNLOAD_LINK = "NO_DOWNLOAD_LINK"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    INFO_HASH_ALREADY_EXISTS = "INFO_HASH_ALREADY_EXISTS"
    FILE_TREE_MISMATCH = "FILE_TREE_MISMATCH"


REJECTION_REASONS: dict[Decision, str] = {
    Decision.SIZE_MISMATCH: "its size does not match",
    Decision.NO_DOWNLOAD_LINK: "it doesn't have a download link",
    Decision.DOWNLOAD_FAILED: "the torrent file failed to download",
    Decision.INFO_HASH_ALREADY_EXISTS: "the info hash matches a torrent you already have",
    Decision.FILE_TREE_MISMATCH: "it has a different file tree",
}
