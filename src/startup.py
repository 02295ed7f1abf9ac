# Upload Assistant © 2025 Audionut & wastaken7 — Licensed under UAPL v1.0
import asyncio
from typing import Any

from rich.markup import escape

from src.configvalidator import validate_config
from src.console import console
from src.exceptions import CrossSeedError
from src.prowlarr import Prowlarr
from src.redaction import Redaction
from src.torrent import validate_torrent_dir


def validate_options(config: dict[str, Any]) -> None:
    """Raise CrossSeedError on the first invalid setting, print warnings unless suppressed."""
    is_valid, errors, warnings = validate_config(config)
    if not is_valid:
        console.print("[bold red]Configuration errors:")
        for error in errors:
            console.print(f"[red]  - {escape(error)}")
        raise CrossSeedError(errors[0])

    default_config: dict[str, Any] = config.get("DEFAULT", {})
    if warnings and not default_config.get("suppress_warnings", False):
        console.print("[yellow]Configuration warnings:")
        for warning in warnings:
            console.print(f"[yellow]  - {escape(str(warning))}")


async def do_startup_validation(config: dict[str, Any], prowlarr: Prowlarr) -> None:
    console.print("Validating your configuration...")
    validate_options(config)
    if config.get("DEFAULT", {}).get("verbose", False):
        console.print(Redaction.redact_private_info(config))
    await asyncio.gather(
        prowlarr.validate_api(),
        validate_torrent_dir(config["DEFAULT"].get("torrent_dir")),
    )
    console.print("[green]Your configuration is valid!")
