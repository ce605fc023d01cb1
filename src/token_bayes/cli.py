"""Command-line interface for token-bayes.

Trains and queries a classifier whose counters live in Redis, with rich
terminal output using the ``click`` and ``rich`` libraries. Options not
given on the command line fall back to ``TOKEN_BAYES_*`` environment
variables (see ``config.Settings``).

Usage::

    token-bayes train spam cheap meds
    token-bayes train ham hello friend
    token-bayes classify cheap
    token-bayes purge 2
    token-bayes stats --output json
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional

import click
import redis
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .classifier import NaiveBayesClassifier
from .config import Settings
from .engine import ClassificationResult
from .errors import TokenBayesError
from .storage import RedisCounterStore

console = Console()

_HANDLED_ERRORS = (TokenBayesError, redis.exceptions.RedisError)


def _configure_logging(level: str) -> None:
    """Send the package's log records to stderr through rich."""
    package_logger = logging.getLogger("token_bayes")
    package_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, log_time_format="[%X]")
        )


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/] {escape(str(error))}")
    sys.exit(1)


def _classifier(ctx: click.Context) -> NaiveBayesClassifier:
    """Build the classifier on first use so ``--help`` never touches Redis."""
    obj = ctx.ensure_object(dict)
    if "classifier" not in obj:
        settings: Settings = obj["settings"]
        store = obj.get("store")
        try:
            if store is None:
                store = RedisCounterStore.from_url(settings.redis_url, prefix=settings.prefix)
                store.ping()
            obj["classifier"] = NaiveBayesClassifier(store, settings.classifier_config())
        except _HANDLED_ERRORS as e:
            _fail(e)
    return obj["classifier"]


@click.group()
@click.version_option(package_name="token-bayes")
@click.option("--redis-url", default=None, help="Redis URL holding the counters.")
@click.option("--prefix", default=None, help="Key prefix shared by cooperating classifiers.")
@click.option("--binarized/--no-binarized", default=None,
              help="Count each distinct token once per example.")
@click.option("--uniform-priors/--no-uniform-priors", default=None,
              help="Give every category the same prior.")
@click.option("-k", "k", type=float, default=None, help="Laplace smoothing constant.")
@click.option("--log-vocab/--no-log-vocab", default=None,
              help="Smooth with the log of the vocabulary size.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def main(
    ctx: click.Context,
    redis_url: Optional[str],
    prefix: Optional[str],
    binarized: Optional[bool],
    uniform_priors: Optional[bool],
    k: Optional[float],
    log_vocab: Optional[bool],
    verbose: bool,
) -> None:
    """Online Naive Bayes classifier over arbitrary tokens."""
    try:
        settings = Settings.from_env()
    except TokenBayesError as e:
        _fail(e)

    overrides = {
        "redis_url": redis_url,
        "prefix": prefix,
        "binarized": binarized,
        "uniform_priors": uniform_priors,
        "k": k,
        "log_vocab": log_vocab,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)
    if verbose:
        settings.log_level = "DEBUG"

    _configure_logging(settings.log_level)
    ctx.ensure_object(dict)["settings"] = settings


@main.command()
@click.argument("category")
@click.argument("tokens", nargs=-1)
@click.pass_context
def train(ctx: click.Context, category: str, tokens: tuple[str, ...]) -> None:
    """Train CATEGORY with one example made of TOKENS.

    Example: token-bayes train spam cheap meds
    """
    nb = _classifier(ctx)
    try:
        nb.train(tokens, category)
    except _HANDLED_ERRORS as e:
        _fail(e)
    console.print(f"Trained [cyan]{escape(category)}[/] with {len(tokens)} tokens.")


@main.command()
@click.argument("category")
@click.argument("tokens", nargs=-1)
@click.pass_context
def untrain(ctx: click.Context, category: str, tokens: tuple[str, ...]) -> None:
    """Remove one previously trained example of CATEGORY.

    Example: token-bayes untrain spam cheap meds
    """
    nb = _classifier(ctx)
    try:
        nb.untrain(tokens, category)
    except _HANDLED_ERRORS as e:
        _fail(e)
    console.print(f"Untrained [cyan]{escape(category)}[/].")


@main.command()
@click.argument("tokens", nargs=-1)
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_context
def classify(ctx: click.Context, tokens: tuple[str, ...], output: str) -> None:
    """Show the probability of every category given TOKENS.

    Example: token-bayes classify cheap
    """
    nb = _classifier(ctx)
    try:
        result = nb.classify(tokens)
    except _HANDLED_ERRORS as e:
        _fail(e)

    if output == "json":
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _render_result(result)


@main.command()
@click.argument("threshold", type=click.IntRange(min=0))
@click.pass_context
def purge(ctx: click.Context, threshold: int) -> None:
    """Remove tokens seen fewer than THRESHOLD times across all categories.

    Example: token-bayes purge 2
    """
    nb = _classifier(ctx)
    try:
        removed = nb.purge_less_than(threshold)
    except _HANDLED_ERRORS as e:
        _fail(e)
    console.print(f"Purged {len(removed)} tokens.")


@main.command("delete-category")
@click.argument("category")
@click.pass_context
def delete_category(ctx: click.Context, category: str) -> None:
    """Remove CATEGORY from classification.

    Example: token-bayes delete-category spam
    """
    nb = _classifier(ctx)
    try:
        deleted = nb.delete_category(category)
    except _HANDLED_ERRORS as e:
        _fail(e)
    if deleted:
        console.print(f"Deleted category [cyan]{escape(category)}[/].")
    else:
        console.print(f"[dim]No category named {escape(category)}.[/]")


@main.command()
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich",
              help="Output format.")
@click.pass_context
def stats(ctx: click.Context, output: str) -> None:
    """Show example and token counts per category."""
    nb = _classifier(ctx)
    try:
        category_stats = nb.category_stats()
        vocab_size = nb.vocabulary.raw_size()
    except _HANDLED_ERRORS as e:
        _fail(e)

    if output == "json":
        click.echo(json.dumps({
            "vocabulary_size": vocab_size,
            "categories": {
                str(cat): s.to_dict() for cat, s in sorted(category_stats.items(), key=lambda x: str(x[0]))
            },
        }, indent=2))
        return

    table = Table(title=f"Categories ({vocab_size} distinct tokens)")
    table.add_column("Category", style="cyan")
    table.add_column("Examples", justify="right")
    table.add_column("Tokens", justify="right")
    for cat in sorted(category_stats, key=str):
        s = category_stats[cat]
        table.add_row(str(cat), str(s.examples), str(s.tokens))
    console.print(table)


# ------------------------------------------------------------------
# Rich rendering helpers
# ------------------------------------------------------------------

def _render_result(result: ClassificationResult) -> None:
    """Render a ClassificationResult as a table, best category first."""
    table = Table(title="Classification")
    table.add_column("Category", style="cyan")
    table.add_column("Probability", justify="right")
    table.add_column("Log score", justify="right", style="dim")

    best = result.argmax()
    for cat, prob in sorted(result.items(), key=lambda x: (-x[1], str(x[0]))):
        style = "bold green" if cat == best else ""
        table.add_row(
            str(cat),
            f"[{style}]{prob:.4f}[/]" if style else f"{prob:.4f}",
            f"{result.log_scores.get(cat, float('nan')):.4f}",
        )
    console.print(table)


if __name__ == "__main__":
    main()
