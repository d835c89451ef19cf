"""CLI entry point for alloc-check."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
import yaml

from alloc_checker import __version__
from alloc_checker.config import load_config
from alloc_checker.errors import ConfigError
from alloc_checker.scanner import CheckResult, check


@click.command()
@click.argument("path", type=click.Path(exists=True, resolve_path=True))
@click.option(
    "-f", "--format", "fmt",
    type=click.Choice(["md", "json", "yaml"], case_sensitive=False),
    default="md",
    help="Output format (default: md).",
)
@click.option(
    "-o", "--output",
    type=click.Path(resolve_path=True),
    default=None,
    help="Output file path. Defaults to stdout.",
)
@click.option(
    "-c", "--config", "config_file",
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    default=None,
    help="Config file (YAML or TOML). Defaults to pyproject.toml / .alloc-checker.yaml.",
)
@click.option("--debug-spew", is_flag=True, default=False, help="Trace every effect decision.")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose logging.")
@click.version_option(version=__version__)
def main(
    path: str,
    fmt: str,
    output: str | None,
    config_file: str | None,
    debug_spew: bool,
    verbose: bool,
) -> None:
    """Check that @no_alloc methods under PATH never allocate."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s %(levelname)s: %(message)s",
    )

    project_path = Path(path)
    try:
        config = load_config(project_path, Path(config_file) if config_file else None)
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc

    if debug_spew:
        config.debug_spew = True
    if config.debug_spew:
        # the root handler prints it even without -v
        logging.getLogger("alloc_checker.effects").setLevel(logging.DEBUG)

    result = check(project_path, config=config)

    if fmt == "json":
        _output_json(result, output)
    elif fmt == "yaml":
        _output_yaml(result, output)
    else:
        _output_md(result, output)

    sys.exit(1 if result.report.failure_count else 0)


def _output_md(result: CheckResult, output: str | None) -> None:
    from alloc_checker.render.markdown import render_markdown
    md = render_markdown(result)
    if output:
        Path(output).write_text(md)
        click.echo(f"Report written to {output}")
    else:
        click.echo(md)


def _output_json(result: CheckResult, output: str | None) -> None:
    text = json.dumps(result.report.model_dump(mode="json"), indent=2)
    if output:
        Path(output).write_text(text)
        click.echo(f"JSON report written to {output}")
    else:
        click.echo(text)


def _output_yaml(result: CheckResult, output: str | None) -> None:
    text = yaml.dump(result.report.model_dump(mode="json"), default_flow_style=False, sort_keys=False)
    if output:
        Path(output).write_text(text)
        click.echo(f"YAML report written to {output}")
    else:
        click.echo(text)


if __name__ == "__main__":
    main()
