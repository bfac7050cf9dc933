"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import logging

import click

from .._glob import read_pattern_file


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _collect_patterns(patterns: tuple[str, ...], from_file: str | None) -> list[str]:
    """Merge repeated pattern options with the lines of a pattern file."""
    result = list(patterns)
    if from_file is not None:
        try:
            result.extend(read_pattern_file(from_file))
        except OSError as exc:
            raise click.ClickException(f"Cannot read pattern file {from_file}: {exc}")
    return result


def _source_options(f):
    """Shared --source/--sources-from options."""
    f = click.option("--sources-from", "sources_from", type=click.Path(exists=True, dir_okay=False),
                     help="Read include patterns from file (one per line, # comments).")(f)
    f = click.option("--source", "-s", "sources", multiple=True,
                     help="Include pattern for project files (glob: or regex:, repeatable).")(f)
    return f


def _ignore_options(f):
    """Shared --ignore/--ignores-from options."""
    f = click.option("--ignores-from", "ignores_from", type=click.Path(exists=True, dir_okay=False),
                     help="Read exclude patterns from file (one per line, # comments).")(f)
    f = click.option("--ignore", "-i", "ignores", multiple=True,
                     help="Exclude pattern (glob: or regex:, repeatable).")(f)
    return f


def _project_option(f):
    return click.option(
        "--project", "-p", "project_dir",
        type=click.Path(exists=True, file_okay=False), default=".",
        help="Project folder to publish from (default: current directory).",
    )(f)


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose/debug logging on stderr.")
@click.pass_context
def main(ctx, verbose):
    """gitpublish: mirror selected project files into a git repository.

    \b
    Quick start:
      gitpublish select -s 'src/**' -i 'src/**/*.tmp'
      gitpublish publish https://example.com/site.git -m "Update" -s 'src/**'

    \b
    Patterns use glob syntax unless prefixed with 'regex:'.
    '*' stays within one folder, '**' crosses folders.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("gitpublish").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)
