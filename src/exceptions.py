# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
from typing import Any


class CrossSeedError(Exception):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        default_message = "An error occurred while cross-seeding"
        # fall back to the default message when raised bare
        if args:
            super().__init__(*args, **kwargs)
        else:
            super().__init__(default_message, **kwargs)


class DecisionCacheError(Exception):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        default_message = "The decision cache could not be read or written"
        if args:
            super().__init__(*args, **kwargs)
        else:
            super().__init__(default_message, **kwargs)


class TorrentCacheError(Exception):
    pass
