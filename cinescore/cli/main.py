"""Main CLI entry point for cinescore."""

import json
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.table import Table

from cinescore import __version__
from cinescore.core.exceptions import CineScoreError
from cinescore.core.logging import configure_logging, correlation_context
from cinescore.core.settings import CineScoreSettings, get_settings
from cinescore.loader import DatasetLoader, ScoringDataset
from cinescore.scoring import (
    CategoryScore,
    WeightedScoreAggregator,
    WeightedScoreCache,
    apply_preset,
    compare_presets,
    find_preset,
    preset_weight_table,
    rank_entities,
)

EXIT_SUCCESS = 0
EXIT_ERROR = 2


class ConfigContext:
    """Context object holding settings for subcommands."""

    def __init__(self) -> None:
        self.settings: CineScoreSettings | None = None
        self.verbose: bool = False

    def get_settings(self) -> CineScoreSettings:
        if self.settings is None:
            self.settings = get_settings()
        return self.settings

    def aggregator(self) -> WeightedScoreAggregator:
        return WeightedScoreAggregator(self.get_settings().scoring)


pass_config = click.make_pass_decorator(ConfigContext, ensure=True)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(EXIT_ERROR)


def _load_dataset(path: Path, preset_id: str | None = None) -> ScoringDataset:
    """Load a dataset, optionally with a preset's weights applied."""
    try:
        dataset = DatasetLoader().load_file(path)
        if preset_id:
            preset = find_preset(dataset.presets, preset_id)
            dataset = dataset.model_copy(
                update={"criteria": apply_preset(dataset.criteria, preset)}
            )
    except CineScoreError as e:
        _fail(str(e))
    return dataset


def _format_score(score: float | None) -> str:
    return "[dim]unrated[/dim]" if score is None else f"{score:.2f}"


def _format_breakdown(entries: list[CategoryScore]) -> str:
    return ", ".join(f"{entry.name} {entry.value:.1f}" for entry in entries)


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2))


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, path_type=Path),
    help="Path to cinescore.config.yaml configuration file",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.version_option(version=__version__, prog_name="cinescore")
@click.pass_context
def cli(ctx: click.Context, config_file: Path | None, verbose: bool) -> None:
    """cinescore - weighted review scores.

    Computes two-level weighted scores (categories and their sub-criteria)
    from evaluation passes stored in a YAML or JSON dataset.

    Examples:

      # Score every evaluated entity
      cinescore score catalog.yaml

      # Score two movies under a weight preset
      cinescore score catalog.yaml --entity m1 --entity m2 --preset story-first

      # Compare presets side by side
      cinescore compare catalog.yaml --preset balanced --preset story-first
    """
    ctx.ensure_object(ConfigContext)
    config_ctx = ctx.obj
    config_ctx.verbose = verbose
    config_ctx.settings = get_settings(config_file)

    log_settings = config_ctx.settings.logging
    configure_logging(
        level="DEBUG" if verbose else log_settings.level,
        json_output=log_settings.json_output,
        log_file=log_settings.file,
    )

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(name="score")
@click.argument("dataset_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--entity",
    "entity_ids",
    multiple=True,
    help="Restrict scoring to this entity id (repeatable)",
)
@click.option(
    "--no-breakdown",
    is_flag=True,
    help="Skip the top-category breakdown",
)
@click.option("--preset", "preset_id", help="Apply this weight preset first")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@pass_config
def score_cmd(
    config_ctx: ConfigContext,
    dataset_file: Path,
    entity_ids: tuple[str, ...],
    no_breakdown: bool,
    preset_id: str | None,
    as_json: bool,
) -> None:
    """Compute weighted scores for a dataset.

    DATASET_FILE is a YAML or JSON file with criteria, evaluations and scores.
    Entities without enough data are listed as unrated.
    """
    dataset = _load_dataset(dataset_file, preset_id)

    with correlation_context():
        result = config_ctx.aggregator().compute(
            dataset.criteria,
            dataset.evaluations,
            dataset.scores,
            entity_ids=list(entity_ids) or None,
            include_breakdown=not no_breakdown,
        )

    if as_json:
        _echo_json(result.to_dict())
        return

    table = Table(title="Weighted Scores", show_header=True, header_style="bold cyan")
    table.add_column("Entity", style="green", no_wrap=True)
    table.add_column("Score", style="yellow", justify="right")
    if not no_breakdown:
        table.add_column("Top Categories", style="dim")

    for entity_id, breakdown in result.breakdown.items():
        row = [entity_id, _format_score(result.weighted.get(entity_id))]
        if not no_breakdown:
            row.append(_format_breakdown(breakdown))
        table.add_row(*row)

    Console().print(table)


@cli.command(name="explain")
@click.argument("dataset_file", type=click.Path(exists=True, path_type=Path))
@click.argument("entity_id")
@click.option("--preset", "preset_id", help="Apply this weight preset first")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@pass_config
def explain_cmd(
    config_ctx: ConfigContext,
    dataset_file: Path,
    entity_id: str,
    preset_id: str | None,
    as_json: bool,
) -> None:
    """Show how an entity's score is built up.

    Lists every category and sub-criterion with the number of collected
    scores and the averaged value.
    """
    dataset = _load_dataset(dataset_file, preset_id)
    detail = config_ctx.aggregator().explain(
        entity_id, dataset.criteria, dataset.evaluations, dataset.scores
    )

    if as_json:
        _echo_json(detail.model_dump(mode="json"))
        return

    table = Table(
        title=f"{entity_id}: {_format_score(detail.overall)}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Criterion", style="green")
    table.add_column("Weight", style="blue", justify="right")
    table.add_column("Scores", style="dim", justify="right")
    table.add_column("Value", style="yellow", justify="right")

    for category in detail.categories:
        table.add_row(
            f"[bold]{category.name or category.criteria_id}[/bold]",
            str(category.weight or 0),
            "",
            _format_score(category.value),
        )
        for sub in category.sub_criteria:
            table.add_row(
                f"  {sub.name or sub.criteria_id}",
                str(sub.weight or 0),
                str(sub.sample_count),
                _format_score(sub.effective_value),
            )

    console = Console()
    console.print(table)
    console.print(f"Evaluation passes: {detail.evaluation_count}")


@cli.command(name="compare")
@click.argument("dataset_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--preset",
    "preset_ids",
    multiple=True,
    required=True,
    help="Preset id to compare (repeatable)",
)
@click.option(
    "--entity",
    "entity_ids",
    multiple=True,
    help="Restrict scoring to this entity id (repeatable)",
)
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of tables")
@pass_config
def compare_cmd(
    config_ctx: ConfigContext,
    dataset_file: Path,
    preset_ids: tuple[str, ...],
    entity_ids: tuple[str, ...],
    as_json: bool,
) -> None:
    """Compare weighted scores under several weight presets."""
    dataset = _load_dataset(dataset_file)

    try:
        presets = [find_preset(dataset.presets, pid) for pid in preset_ids]
        results = compare_presets(
            dataset.criteria,
            dataset.evaluations,
            dataset.scores,
            presets,
            entity_ids=list(entity_ids) or None,
            aggregator=config_ctx.aggregator(),
        )
    except CineScoreError as e:
        _fail(str(e))

    if as_json:
        _echo_json({pid: result.to_dict() for pid, result in results.items()})
        return

    console = Console()

    weights = Table(title="Preset Weights", show_header=True, header_style="bold cyan")
    weights.add_column("Criterion", style="green")
    for preset in presets:
        weights.add_column(preset.name, justify="right")
    for row in preset_weight_table(dataset.criteria, presets):
        label = row.criteria_name or row.criteria_id
        if row.parent_id:
            label = f"  {label}"
        weights.add_row(label, *("-" if w is None else str(w) for w in row.weights))
    console.print(weights)

    scores = Table(title="Weighted Scores", show_header=True, header_style="bold cyan")
    scores.add_column("Entity", style="green", no_wrap=True)
    for preset in presets:
        scores.add_column(preset.name, style="yellow", justify="right")
    entities = list(dict.fromkeys(e for r in results.values() for e in r.breakdown))
    for entity_id in entities:
        scores.add_row(
            entity_id,
            *(_format_score(r.weighted.get(entity_id)) for r in results.values()),
        )
    console.print(scores)


@cli.command(name="rank")
@click.argument("dataset_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--min-score",
    type=float,
    default=None,
    help="Only list entities scoring at least this much",
)
@click.option("--ascending", is_flag=True, help="Lowest score first")
@click.option("--limit", type=click.IntRange(min=1), default=None, help="Top N only")
@click.option("--preset", "preset_id", help="Apply this weight preset first")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of a table")
@pass_config
def rank_cmd(
    config_ctx: ConfigContext,
    dataset_file: Path,
    min_score: float | None,
    ascending: bool,
    limit: int | None,
    preset_id: str | None,
    as_json: bool,
) -> None:
    """Rank the catalog by cached weighted score.

    Recomputes the weighted-score cache for every catalog entity, then
    orders by cached score. Unrated entities are listed last.
    """
    dataset = _load_dataset(dataset_file, preset_id)
    entity_ids = dataset.entity_ids()

    cache = WeightedScoreCache(config_ctx.aggregator())
    with correlation_context():
        cache.recompute(
            dataset.criteria, dataset.evaluations, dataset.scores, entity_ids
        )

    ranked = rank_entities(
        cache.scores(),
        entity_ids=entity_ids,
        min_score=min_score,
        descending=not ascending,
    )
    if limit is not None:
        ranked = ranked[:limit]

    if as_json:
        _echo_json([entry.model_dump() for entry in ranked])
        return

    table = Table(title="Ranking", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Entity", style="green", no_wrap=True)
    table.add_column("Score", style="yellow", justify="right")
    table.add_column("Top Categories", style="dim")
    for entry in ranked:
        cached = cache.get(entry.entity_id)
        table.add_row(
            str(entry.rank),
            entry.entity_id,
            "[dim]unrated[/dim]" if entry.score is None else f"{entry.score:.1f}",
            _format_breakdown(cached.breakdown) if cached else "",
        )
    Console().print(table)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
