# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import argparse
import copy
import sys
from collections.abc import Sequence
from typing import Any, Optional, cast

from src.console import console
from src.constants import ACTIONS


class ShortHelpFormatter(argparse.HelpFormatter):
    """
    Custom formatter for short help (-h)
    Only displays essential options.
    """

    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=40, width=80)

    def format_help(self) -> str:
        """
        Customize short help output (only show essential arguments).
        """
        short_usage = "usage: crossseed.py [options]\n\n"
        short_options = """
Common options:
  -i, --torrent-dir          Directory with the .torrent files of what you seed
  -o, --output-dir           Directory to save matched .torrent files in
  -A, --action               What to do with matches [save, inject]
  -d, --delay                Seconds to wait between searches
  -t, --trackers             Comma-separated Prowlarr indexer ids to search
  -v, --verbose              Print every rejected result and why

Use --help for a full list of options.
"""
        return short_usage + short_options


class CustomArgumentParser(argparse.ArgumentParser):
    """
    Custom ArgumentParser to handle short (-h) and long (--help) help messages.
    """

    def print_help(self, file: Any = None) -> None:
        """
        Show short help for `-h` and full help for `--help`
        """
        if "--help" in sys.argv:
            super().print_help(file)  # Full help
        else:
            short_parser = argparse.ArgumentParser(formatter_class=ShortHelpFormatter, add_help=False, usage="crossseed.py [options]")
            short_parser.print_help(file)


# argument dest -> (config section, config key)
CONFIG_OVERRIDES: dict[str, tuple[str, str]] = {
    "torrent_dir": ("DEFAULT", "torrent_dir"),
    "output_dir": ("DEFAULT", "output_dir"),
    "cache_dir": ("DEFAULT", "cache_dir"),
    "action": ("DEFAULT", "action"),
    "delay": ("DEFAULT", "delay"),
    "fuzzy_size_threshold": ("DEFAULT", "fuzzy_size_threshold"),
    "fetch_timeout": ("DEFAULT", "fetch_timeout"),
    "verbose": ("DEFAULT", "verbose"),
    "rtorrent_rpc_url": ("DEFAULT", "rtorrent_rpc_url"),
    "qbittorrent_url": ("DEFAULT", "qbittorrent_url"),
    "prowlarr_url": ("PROWLARR", "url"),
    "prowlarr_api_key": ("PROWLARR", "api_key"),
    "trackers": ("PROWLARR", "trackers"),
}


class Args:
    """
    Parse Args
    """

    def __init__(self, config: dict[str, Any]) -> None:
        self.config = config

    def build_parser(self) -> CustomArgumentParser:
        parser = CustomArgumentParser(usage="crossseed.py [options]")
        parser.add_argument("-i", "--torrent-dir", dest="torrent_dir", required=False, help="Directory with the .torrent files of what you seed", type=str)
        parser.add_argument("-o", "--output-dir", dest="output_dir", required=False, help="Directory to save matched .torrent files in", type=str)
        parser.add_argument("--cache-dir", dest="cache_dir", required=False, help="Directory holding the decision cache and cached matches", type=str)
        parser.add_argument("-A", "--action", dest="action", required=False, choices=list(ACTIONS), help="What to do with matches")
        parser.add_argument("-d", "--delay", dest="delay", required=False, type=float, help="Seconds to wait between searches")
        parser.add_argument(
            "--fuzzy-size-threshold",
            dest="fuzzy_size_threshold",
            required=False,
            type=float,
            help="Size tolerance as a fraction, 0.02 accepts results within 2%% either way",
        )
        parser.add_argument("--fetch-timeout", dest="fetch_timeout", required=False, type=float, help="Seconds before a .torrent download is given up on")
        parser.add_argument("-t", "--trackers", dest="trackers", required=False, type=str, help="Comma-separated Prowlarr indexer ids to search")
        parser.add_argument("-u", "--prowlarr-url", dest="prowlarr_url", required=False, type=str, help="Prowlarr base url")
        parser.add_argument("-k", "--prowlarr-api-key", dest="prowlarr_api_key", required=False, type=str, help="Prowlarr API key")
        parser.add_argument("--rtorrent-rpc-url", dest="rtorrent_rpc_url", required=False, type=str, help="rTorrent XML-RPC url (action inject)")
        parser.add_argument("--qbittorrent-url", dest="qbittorrent_url", required=False, type=str, help="qBittorrent Web UI url (action inject)")
        parser.add_argument("--offset", dest="offset", required=False, type=int, default=0, help="Skip the first N torrents of the torrent directory")
        parser.add_argument("-v", "--verbose", dest="verbose", action="store_true", required=False, default=None, help="Print every rejected result and why")
        return parser

    def parse(self, argv: Sequence[str]) -> tuple[dict[str, Any], CustomArgumentParser]:
        parser = self.build_parser()
        args = vars(parser.parse_args(list(argv)))

        trackers_value = args.get("trackers")
        if trackers_value is not None:
            args["trackers"] = self.split_trackers(str(trackers_value))

        offset = cast(int, args.get("offset") or 0)
        if offset < 0:
            console.print("[red]--offset must not be negative")
            sys.exit(1)
        return args, parser

    @staticmethod
    def split_trackers(value: str) -> list[str]:
        value = value.strip("\"'")
        return [t.strip() for t in value.split(",") if t.strip()]

    def apply_to_config(self, args: dict[str, Any], config: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """Return a copy of the config with every given command-line value applied."""
        merged = copy.deepcopy(config if config is not None else self.config)
        for dest, (section, key) in CONFIG_OVERRIDES.items():
            value = args.get(dest)
            if value is None:
                continue
            merged.setdefault(section, {})[key] = value
        return merged
