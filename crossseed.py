#!/usr/bin/env python3
# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
import os
import re
import sys
import traceback
from typing import Any, Optional, cast

from rich.markup import escape

from src.args import Args
from src.console import console
from src.decide import Assessor
from src.decision_cache import DecisionCache
from src.exceptions import CrossSeedError, DecisionCacheError, TorrentCacheError
from src.pipeline import CrossSeedPipeline
from src.prowlarr import Prowlarr
from src.startup import do_startup_validation
from src.torrent_cache import TorrentFileCache

base_dir = os.path.abspath(os.path.dirname(__file__))
_config_path = os.path.join(base_dir, "data", "config.py")


def _print_config_error(error_type: str, message: str, lineno: Optional[int] = None,
                        text: Optional[str] = None, offset: Optional[int] = None,
                        suggestion: Optional[str] = None) -> None:
    """Print a formatted config error message."""
    console.print(f"{error_type} in config.py:", style="red", markup=False)
    if lineno:
        console.print(f"  Line {lineno}: {message}", style="red", markup=False)
        if text:
            console.print(f"    {text.rstrip()}", style="yellow", markup=False)
            if offset:
                console.print(f"    {' ' * (offset - 1)}^", style="yellow", markup=False)
    else:
        console.print(f"  {message}", style="red", markup=False)
    if suggestion:
        console.print(f"  Suggestion: {suggestion}", style="green", markup=False)
    console.print("\nReference: data/example-config.py", style="red", markup=False)


def _traceback_location() -> tuple[Optional[int], Optional[str]]:
    tb = traceback.extract_tb(sys.exc_info()[2])
    return (tb[-1].lineno, tb[-1].line) if tb else (None, None)


def load_config() -> dict[str, Any]:
    if not os.path.exists(_config_path):
        console.print("Configuration file 'config.py' not found.", style="red", markup=False)
        console.print(f"Please copy data/example-config.py to: {_config_path}", style="red", markup=False)
        sys.exit(1)

    try:
        from data.config import config as _imported_config  # pyright: ignore[reportMissingImports,reportUnknownVariableType]
        return cast(dict[str, Any], _imported_config)
    except SyntaxError as e:
        _print_config_error(
            "Syntax error",
            str(e.msg) if e.msg else "Invalid syntax",
            lineno=e.lineno,
            text=e.text,
            offset=e.offset
        )
        console.print("\nCommon syntax issues:", style="red", markup=False)
        console.print("  - Missing comma between dictionary items", style="yellow", markup=False)
        console.print("  - Missing closing bracket, brace, quote or comma", style="yellow", markup=False)
        sys.exit(1)
    except NameError as e:
        lineno, text = _traceback_location()
        suggestion = None
        error_str = str(e)
        if "'true'" in error_str.lower():
            suggestion = "Use 'True' (capital T) instead of 'true'"
        elif "'false'" in error_str.lower():
            suggestion = "Use 'False' (capital F) instead of 'false'"
        elif "'null'" in error_str.lower() or "'none'" in error_str.lower():
            suggestion = "Use 'None' (capital N) instead of 'null' or 'none'"
        else:
            match = re.search(r"name '([^']+)' is not defined", error_str)
            if match:
                suggestion = f"Did you forget quotes? Try \"{match.group(1)}\" instead of '{match.group(1)}'"
        _print_config_error("Name error", error_str, lineno=lineno, text=text, suggestion=suggestion)
        sys.exit(1)
    except Exception as e:
        lineno, text = _traceback_location()
        _print_config_error("Error", str(e), lineno=lineno, text=text)
        sys.exit(1)


async def main(argv: list[str]) -> int:
    parser = Args(load_config())
    args, _ = parser.parse(argv)
    config = parser.apply_to_config(args)

    default_config: dict[str, Any] = config.setdefault("DEFAULT", {})
    if not default_config.get("cache_dir"):
        default_config["cache_dir"] = os.path.join(base_dir, "data", "cache")

    prowlarr = Prowlarr(config)
    await do_startup_validation(config, prowlarr)

    decision_cache = DecisionCache(str(default_config["cache_dir"]))
    await decision_cache.open()
    try:
        torrent_cache = TorrentFileCache(str(default_config["cache_dir"]))
        assessor = Assessor(config, decision_cache, torrent_cache)
        pipeline = CrossSeedPipeline(config, prowlarr, assessor)
        return await pipeline.run(offset=int(args.get("offset") or 0))
    finally:
        await decision_cache.close()


def run(argv: list[str]) -> int:
    """Run to completion and return the process exit status."""
    try:
        asyncio.run(main(argv))
    except (CrossSeedError, DecisionCacheError, TorrentCacheError) as e:
        console.print(f"[bold red]{escape(str(e))}[/bold red]", highlight=False)
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run(sys.argv[1:]))
