"""The publish command."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from ..credentials import GitCredentialHelper
from ..orchestrator import PublishConfig, publish
from ._helpers import (
    main,
    _collect_patterns,
    _ignore_options,
    _project_option,
    _source_options,
    _status,
)


@main.command("publish")
@click.argument("remote", envvar="GITPUBLISH_REMOTE")
@click.option("-m", "--message", required=True, help="Commit message.")
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
              help="Parent of working copies (default: <project>/gitpublishwork).")
@click.option("--local-repo", "local_repo", default=None,
              help="Fixed working-copy folder name inside the work folder.")
@click.option("--username", "-u", envvar="GITPUBLISH_USERNAME", help="HTTP(S) username.")
@click.option("--password", envvar="GITPUBLISH_PASSWORD", help="HTTP(S) password or token.")
@click.option("--credential-helper", is_flag=True, default=False,
              help="Look credentials up with 'git credential fill' / 'gh auth token'.")
@click.option("--author", default="gitpublish", show_default=True, help="Commit author name.")
@click.option("--email", default="gitpublish@localhost", show_default=True, help="Commit author email.")
@click.option("--debug", is_flag=True, default=False,
              help="Log folder listings and status dumps.")
@click.option("-n", "--dry-run", is_flag=True, default=False,
              help="Commit locally but do not push; keeps the working copy.")
@click.option("--keep", is_flag=True, default=False,
              help="Keep the working copy after the run.")
@click.pass_context
def publish_cmd(ctx, remote, message, project_dir, sources, sources_from, ignores,
                ignores_from, meta_dir, doc_dir, doc_subfolder, work_folder, local_repo,
                username, password, credential_helper, author, email, debug, dry_run, keep):
    """Publish selected project files to the repository at REMOTE.

    REMOTE is cloned into a fresh working copy, the selected files are
    mirrored into it, and a commit is pushed only if something changed.
    """
    if debug:
        logging.getLogger("gitpublish").setLevel(
            min(logging.getLogger("gitpublish").getEffectiveLevel(), logging.INFO)
        )
    config = PublishConfig(
        remote_url=remote,
        commit_message=message,
        project_dir=Path(project_dir),
        sources=_collect_patterns(sources, sources_from),
        ignores=_collect_patterns(ignores, ignores_from),
        meta_dir=Path(meta_dir) if meta_dir else None,
        doc_dir=Path(doc_dir) if doc_dir else None,
        doc_subfolder=doc_subfolder,
        work_folder=Path(work_folder) if work_folder else None,
        local_repository_folder=local_repo,
        username=username,
        password=password,
        credentials=GitCredentialHelper() if credential_helper else None,
        author=author,
        email=email,
        debug=debug,
        dry_run=dry_run,
        must_cleanup=not keep,
    )
    outcome = publish(config)
    if outcome.working_copy is not None:
        _status(ctx, f"Working copy kept at {outcome.working_copy}")
    if not outcome.success:
        raise click.ClickException(outcome.detail)
    if outcome.no_op:
        click.echo("Nothing to publish; repository already up to date.")
    elif outcome.push is not None and not outcome.push.transmitted:
        click.echo(f"Committed {outcome.commit_id[:7]} (dry run, not pushed).")
    else:
        click.echo(f"Published {outcome.commit_id[:7]} to {remote}.")
    if outcome.cleanup_error is not None:
        click.echo(f"Warning: cleanup failed: {outcome.cleanup_error}", err=True)
