"""CLI entry point for the Content Intelligence Engine."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import DEFAULT_CONFIG, DEFAULT_VOCABULARY, load_config, load_vocabulary

console = Console()


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--vocabulary", "vocabulary_path", default=None, help="Path to vocabulary file")
@click.pass_context
def cli(ctx, config_path, vocabulary_path):
    """Content Intelligence Engine - analyze, tag, link, search and turn content into tasks."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["vocabulary_path"] = vocabulary_path


def _get_config(ctx) -> dict:
    config = load_config(ctx.obj.get("config_path"))
    logging.basicConfig(
        level=config.get("log_level", "INFO"),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    return config


def _get_engine(ctx):
    from .engine import ContentIntelligenceEngine

    config = _get_config(ctx)
    vocabulary = load_vocabulary(ctx.obj.get("vocabulary_path"))
    return ContentIntelligenceEngine.from_config(config, vocabulary)


def _load(path: str):
    from .errors import RecordFormatError
    from .ingest import load_records

    try:
        records = load_records(path)
    except RecordFormatError as e:
        raise click.ClickException(str(e)) from e
    if not records:
        console.print(f"[yellow]No records found in {path}[/]")
    return records


@cli.command()
@click.option("--path", default=".", help="Directory to write config.yaml and vocabulary.yaml into")
@click.option("--force", is_flag=True, help="Overwrite existing files")
def init(path, force):
    """Write default config.yaml and vocabulary.yaml."""
    import yaml

    target = Path(path).expanduser().resolve()
    target.mkdir(parents=True, exist_ok=True)
    console.print(f"[bold green]Initializing CIE config in {target}[/]")

    header = (
        "# NLP backend: auto (NLTK when its data is installed), nltk or heuristic\n"
        "# Set nlp.download_missing: true to fetch NLTK data packages on first use\n\n"
    )
    files = {
        "config.yaml": header + yaml.dump(DEFAULT_CONFIG, default_flow_style=False, sort_keys=False),
        "vocabulary.yaml": yaml.dump(DEFAULT_VOCABULARY, default_flow_style=False, sort_keys=False),
    }
    for name, text in files.items():
        file_path = target / name
        if file_path.exists() and not force:
            console.print(f"  [dim]Exists, skipped: {file_path}[/]")
            continue
        file_path.write_text(text)
        console.print(f"  Created {name}: {file_path}")

    console.print("[bold green]✓ CIE initialized![/]")


@cli.command()
@click.argument("path")
@click.pass_context
def analyze(ctx, path):
    """Analyze and classify every record in PATH."""
    from .errors import AnalysisError

    engine = _get_engine(ctx)
    records = _load(path)
    if not records:
        return

    table = Table(title="Analysis")
    table.add_column("ID", style="dim")
    table.add_column("Category", style="cyan")
    table.add_column("Lang")
    table.add_column("Priority")
    table.add_column("Keywords", max_width=40)
    table.add_column("Summary", max_width=60)

    for record in records:
        try:
            a = engine.analyze(record)
        except AnalysisError as e:
            table.add_row(record.id, "[red]failed[/]", "", "", "", str(e))
            continue
        table.add_row(
            record.id, a.category.value, a.language, a.priority.value,
            ", ".join(a.keywords[:5]), a.summary.replace("\n", " "),
        )
    console.print(table)


@cli.command()
@click.argument("path")
@click.pass_context
def tags(ctx, path):
    """Show semantic tags for every record in PATH."""
    engine = _get_engine(ctx)
    records = _load(path)

    for record in records:
        table = Table(title=f"Tags: {record.title or record.id}")
        table.add_column("Tag", style="cyan")
        table.add_column("Type")
        table.add_column("Relevance", justify="right", style="green")
        table.add_column("Source", style="dim")
        for tag in engine.tag(record):
            table.add_row(tag.name, tag.type.value, f"{tag.relevance:.2f}", tag.source.value)
        console.print(table)


@cli.command()
@click.argument("path")
@click.option("--schedule", is_flag=True, help="Include scheduling hints")
@click.pass_context
def tasks(ctx, path, schedule):
    """Generate candidate tasks from every record in PATH."""
    engine = _get_engine(ctx)
    records = _load(path)

    for record in records:
        generated = engine.generate_tasks(record)
        if not generated:
            console.print(f"[dim]{record.id}: no tasks[/]")
            continue

        table = Table(title=f"Tasks: {record.title or record.id}")
        table.add_column("#", style="dim", width=3)
        table.add_column("Title", style="cyan", max_width=50)
        table.add_column("Priority")
        table.add_column("Category")
        table.add_column("Due")
        table.add_column("Confidence", justify="right", style="green")
        for i, task in enumerate(generated, 1):
            due = task.due_date.strftime("%Y-%m-%d %H:%M") if task.due_date else "-"
            table.add_row(
                str(i), task.title, task.priority.value, task.category.value,
                due, f"{task.confidence:.2f}",
            )
        console.print(table)

        if schedule:
            for s in engine.task_generator.suggest_schedule(generated):
                start = s.suggested_start.strftime("%Y-%m-%d %H:%M") if s.suggested_start else "-"
                console.print(
                    f"  {s.title}: urgency {s.urgency:.2f}, {s.complexity}, "
                    f"automation {s.automation_potential}, start {start}"
                )


@cli.command()
@click.argument("path")
@click.option("--insights", is_flag=True, help="Also show topic/entity/temporal insight clusters")
@click.pass_context
def graph(ctx, path, insights):
    """Build the knowledge graph for PATH and show connections and clusters."""
    engine = _get_engine(ctx)
    records = _load(path)
    if not records:
        return

    report = engine.ingest(records)
    structure = report.graph
    console.print(
        f"[green]✓ {len(structure.nodes)} node(s), {len(structure.connections)} connection(s), "
        f"{len(structure.clusters)} cluster(s)[/]"
    )

    if structure.connections:
        table = Table(title="Connections")
        table.add_column("From", style="cyan")
        table.add_column("To", style="cyan")
        table.add_column("Type")
        table.add_column("Strength", justify="right", style="green")
        for c in sorted(structure.connections, key=lambda c: c.strength, reverse=True):
            table.add_row(c.from_id, c.to_id, c.connection_type.value, f"{c.strength:.3f}")
        console.print(table)

    for cluster in structure.clusters:
        console.print(f"  Cluster {cluster.cluster_id} ({cluster.label}): {', '.join(cluster.node_ids)}")

    if insights:
        for insight in engine.graph.insight_clusters():
            console.print(
                f"  [bold]{insight.title}[/] [dim]({insight.cluster_type.value}, "
                f"{insight.confidence:.2f})[/]: {', '.join(insight.items)}"
            )


@cli.command()
@click.argument("query")
@click.option("--path", required=True, help="Records to search (file or directory)")
@click.option("--type", "content_types", multiple=True, help="Restrict to content type(s)")
@click.option("--tag", "tag_filters", multiple=True, help="Restrict to entries carrying a tag")
@click.option("--min-relevance", default=0.0, help="Minimum relevance score")
@click.option("--n", "-n", default=10, help="Number of results")
@click.pass_context
def search(ctx, query, path, content_types, tag_filters, min_relevance, n):
    """Search records in PATH for QUERY."""
    from .errors import SearchValidationError
    from .models import SearchFilters

    engine = _get_engine(ctx)
    records = _load(path)
    engine.ingest(records)

    try:
        filters = SearchFilters(
            content_types=set(content_types) or None,
            tags=list(tag_filters),
            min_relevance=min_relevance,
        )
        results = engine.search(query, filters)
    except SearchValidationError as e:
        raise click.ClickException(str(e)) from e

    if not results:
        console.print("[yellow]No results found.[/]")
        return

    table = Table(title=f"Search Results: {query}")
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Strategy")
    table.add_column("Preview", max_width=60)
    for i, r in enumerate(results[:n], 1):
        preview = r.preview[:80].replace("\n", " ")
        table.add_row(str(i), r.title or r.content_id, f"{r.relevance:.3f}", r.strategy.value, preview)
    console.print(table)


@cli.command()
@click.argument("partial")
@click.option("--path", required=True, help="Records to draw suggestions from")
@click.pass_context
def suggest(ctx, partial, path):
    """Suggest queries and tags for PARTIAL."""
    engine = _get_engine(ctx)
    engine.ingest(_load(path))

    suggestions = engine.suggest(partial)
    if not suggestions:
        console.print("[yellow]No suggestions.[/]")
        return
    for s in suggestions:
        console.print(f"  {s.text} [dim]({s.type.value}, {s.confidence:.1f})[/]")


if __name__ == "__main__":
    cli()
