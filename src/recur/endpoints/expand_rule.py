#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
from __future__ import annotations

import datetime
import logging
from itertools import islice

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from recur.config import load_config
from recur.exceptions import ConfigError, InvalidConfiguration, ParseError
from recur.parser import parse_rule
from recur.rule import RRule

logger = logging.getLogger(__name__)

INDEX_COL_WIDTH = 6


def _occurrences_table(
    rule: RRule, occurrences: list[datetime.datetime], datetime_format: str
) -> Table:
    table = Table(
        title=rule.to_text(), show_header=True, header_style="bold magenta"
    )
    table.add_column("#", justify="right", style="cyan", width=INDEX_COL_WIDTH)
    table.add_column("Local time", style="white")
    table.add_column("UTC offset", style="dim")
    table.add_column("Weekday", style="white")
    for ix, occurrence in enumerate(occurrences):
        table.add_row(
            str(ix + 1),
            occurrence.strftime(datetime_format),
            occurrence.strftime("%z"),
            occurrence.strftime("%A"),
        )
    return table


@click.command()
@click.argument("rule_text")
@click.option(
    "--start",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"]),
    required=True,
    help="First instant considered, read on the wall clock of the zone.",
)
@click.option("--zone", default=None, help="IANA zone name, eg Europe/London.")
@click.option(
    "--limit", type=click.IntRange(min=1), default=None, help="Occurrences to print."
)
@click.option(
    "--set",
    "overrides",
    multiple=True,
    help="Configuration override, eg --set expansion.max_idle_years=20.",
)
def expand_rule(
    rule_text: str,
    start: datetime.datetime,
    zone: str | None,
    limit: int | None,
    overrides: tuple[str, ...],
) -> None:
    """Print the first occurrences of RULE_TEXT, an RFC 5545 recurrence rule."""
    try:
        cfg = load_config(list(overrides))
    except ConfigError as e:
        raise click.BadParameter(str(e), param_hint="--set")
    logging.basicConfig(
        level=cfg.logging.level,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )
    zone = zone or cfg.display.default_zone
    if limit is None:
        limit = cfg.display.limit
    try:
        rule = parse_rule(rule_text, zone=zone)
    except ParseError as e:
        raise click.BadParameter(str(e), param_hint="RULE_TEXT")
    except InvalidConfiguration as e:
        raise click.BadParameter(str(e), param_hint="--zone")

    logger.info(f"Expanding {rule.to_text()} in {zone} from {start.isoformat()}")
    try:
        occurrences = rule.from_(start, max_idle_years=cfg.expansion.max_idle_years)
    except InvalidConfiguration as e:
        raise click.BadParameter(str(e), param_hint="RULE_TEXT")
    occurrences = list(islice(occurrences, limit))
    console = Console()
    if not occurrences:
        console.print("[bold]No occurrences.[/bold]")
        return
    console.print(
        _occurrences_table(rule, occurrences, cfg.display.datetime_format),
        width=None,
    )
