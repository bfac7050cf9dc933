"""The select command: preview which project files would be published."""

from __future__ import annotations

from pathlib import Path

import click

from ..exceptions import GitPublishError
from ..orchestrator import PublishConfig, build_sources
from ._helpers import (
    main,
    _collect_patterns,
    _ignore_options,
    _project_option,
    _source_options,
)


@main.command("select")
@_project_option
@_source_options
@_ignore_options
@click.option("--meta-dir", type=click.Path(file_okay=False),
              help="Folder copied unconditionally (default: <project>/gitMeta).")
@click.option("--doc-dir", type=click.Path(file_okay=False),
              help="Documentation folder copied into the doc subfolder.")
@click.option("--doc-subfolder", default="javadoc", show_default=True,
              help="Destination folder for --doc-dir.")
@click.option("--work-folder", type=click.Path(), envvar="GITPUBLISH_WORK_FOLDER",
              help="Work folder (excluded from the project files).")
def select_cmd(project_dir, sources, sources_from, ignores, ignores_from,
               meta_dir, doc_dir, doc_subfolder, work_folder):
    """List the files a publish would copy, as destination paths.

    Nothing is cloned or written.
    """
    config = PublishConfig(
        remote_url="",
        commit_message="",
        project_dir=Path(project_dir),
        sources=_collect_patterns(sources, sources_from),
        ignores=_collect_patterns(ignores, ignores_from),
        meta_dir=Path(meta_dir) if meta_dir else None,
        doc_dir=Path(doc_dir) if doc_dir else None,
        doc_subfolder=doc_subfolder,
        work_folder=Path(work_folder) if work_folder else None,
    )
    try:
        roots, _ = build_sources(config)
        selected: set[str] = set()
        for root in roots:
            selected.update(root.target_path(p) for p in root.selected())
    except GitPublishError as exc:
        raise click.ClickException(str(exc))
    for path in sorted(selected):
        click.echo(path)
