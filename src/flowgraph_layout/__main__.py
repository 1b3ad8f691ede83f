"""CLI entry point for flowgraph-layout."""

import json
import logging
import sys
from dataclasses import replace

import click

from flowgraph_layout.analysis import cyclomatic_complexity, cyclomatic_complexity_for_selection
from flowgraph_layout.config import LayoutSettings
from flowgraph_layout.ir.graph import LayoutGraph
from flowgraph_layout.islands import layout_islands
from flowgraph_layout.types import PlacementStrategy, RankAlignment


@click.command()
@click.argument("input", required=False, type=click.Path(exists=True))
@click.option("--select", "-s", "select", type=int, multiple=True, help="Node id to lay out (repeatable; default all)")
@click.option("--spacing-x", "spacing_x", type=float, default=None, help="Horizontal gap between ranks")
@click.option("--spacing-y-exec", "spacing_y_exec", type=float, default=None, help="Vertical gap before exec nodes")
@click.option("--spacing-y-data", "spacing_y_data", type=float, default=None, help="Vertical gap before data nodes")
@click.option(
    "--alignment",
    "alignment",
    type=click.Choice([a.value for a in RankAlignment], case_sensitive=False),
    default=None,
    help="Node alignment inside a rank column",
)
@click.option(
    "--placement",
    "placement",
    type=click.Choice([p.value for p in PlacementStrategy], case_sensitive=False),
    default=None,
    help="Vertical placement strategy",
)
@click.option("--variable-get-min-length", "variable_get_min_length", type=int, default=None, help="Rank gap after single-use getters")
@click.option("--no-horizontal-exec", "no_horizontal_exec", is_flag=True, help="Do not align linear exec chains")
@click.option("--complexity", "complexity", is_flag=True, help="Include cyclomatic complexity in the output")
@click.option("--output", "-o", "output", type=str, default=None, help="Write output to this file instead of stdout")
@click.option("--verbose", "-v", "verbose", is_flag=True, help="Log pipeline details to stderr")
def main(
    input: str | None,
    select: tuple[int, ...],
    spacing_x: float | None,
    spacing_y_exec: float | None,
    spacing_y_data: float | None,
    alignment: str | None,
    placement: str | None,
    variable_get_min_length: int | None,
    no_horizontal_exec: bool,
    complexity: bool,
    output: str | None,
    verbose: bool,
) -> None:
    """Lay out a JSON exec/data graph and print node positions as JSON."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if input:
        try:
            with open(input) as f:
                text = f.read()
        except OSError as e:
            click.echo(f"error: cannot read '{input}': {e}", err=True)
            sys.exit(1)
    else:
        text = sys.stdin.read()

    try:
        graph = LayoutGraph.loads(text)
        settings = LayoutSettings.from_env()
    except ValueError as e:
        click.echo(f"parse error:\n{e}", err=True)
        sys.exit(1)

    overrides: dict = {}
    if spacing_x is not None:
        overrides["exec_spacing_x"] = overrides["data_spacing_x"] = spacing_x
    if spacing_y_exec is not None:
        overrides["exec_spacing_y"] = spacing_y_exec
    if spacing_y_data is not None:
        overrides["data_spacing_y"] = spacing_y_data
    if alignment is not None:
        overrides["rank_alignment"] = RankAlignment(alignment.lower())
    if placement is not None:
        overrides["placement"] = PlacementStrategy(placement.lower())
    if variable_get_min_length is not None:
        overrides["variable_get_min_length"] = variable_get_min_length
    if no_horizontal_exec:
        overrides["prefer_horizontal_exec"] = False
    settings = replace(settings, **overrides)

    selected = list(select) if select else None
    result = layout_islands(graph, selected, settings)
    if not result:
        click.echo(f"layout error: {result.error}\n{result.guidance}", err=True)
        sys.exit(1)

    payload = result.to_dict()
    if complexity:
        if selected is None:
            payload["complexity"] = cyclomatic_complexity(graph)
        else:
            payload["complexity"] = cyclomatic_complexity_for_selection(graph, selected)
    rendered = json.dumps(payload, indent=2) + "\n"

    if output:
        try:
            with open(output, "w") as f:
                f.write(rendered)
        except OSError as e:
            click.echo(f"error: cannot write '{output}': {e}", err=True)
            sys.exit(1)
    else:
        click.echo(rendered, nl=False)


if __name__ == "__main__":
    main()
