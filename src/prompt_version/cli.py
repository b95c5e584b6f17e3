"""Command line interface for Prompt Version."""

import functools
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
from rich.console import Console

from . import __version__
from .config import ConfigManager
from .core import NOT_INITIALIZED_MESSAGE, OperationResult, VersionCore
from .display import (
    display_branches,
    display_diff,
    display_log,
    display_status,
    display_version,
)
from .errors import PromptVersionError
from .utils.exception_logger import ExceptionLogger

logger = logging.getLogger(__name__)

console = Console()
error_console = Console(stderr=True)


def _output_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _fail(ctx: click.Context, message: str) -> None:
    """Report a failure and exit with status 1."""
    if ctx.obj.get("json"):
        _output_json({"success": False, "error": message})
    else:
        error_console.print(f"Error: {message}", style="red", markup=False)
    sys.exit(1)


def _report(ctx: click.Context, result: OperationResult) -> None:
    """Print an operation result, exiting with status 1 on failure."""
    if ctx.obj.get("json"):
        _output_json(result.to_dict())
        if not result.success:
            sys.exit(1)
        return

    if result.success:
        console.print(f"✅ {result.message}", style="green", markup=False)
    else:
        _fail(ctx, result.error or result.message or "Operation failed")


def _core(ctx: click.Context) -> VersionCore:
    core: VersionCore = ctx.obj["core"]
    if not core.is_initialized():
        _fail(ctx, NOT_INITIALIZED_MESSAGE)
    return core


def handle_errors(func):
    """Turn escaping exceptions into an error message and exit status 1.

    Store corruption and unexpected errors are also written to the
    workspace exception log.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        try:
            return func(*args, **kwargs)
        except PromptVersionError as e:
            _log_exception(ctx, e)
            _fail(ctx, str(e))
        except Exception as e:
            _log_exception(ctx, e)
            if ctx.obj.get("verbose"):
                import traceback

                error_console.print(traceback.format_exc(), markup=False)
            _fail(ctx, f"Unexpected error: {e}")

    return wrapper


def _log_exception(ctx: click.Context, exception: Exception) -> None:
    exception_logger = ExceptionLogger.get_instance()
    if exception_logger:
        exception_logger.log_exception(
            exception, context={"command": ctx.info_name, "params": ctx.params}
        )
    logger.debug(f"{ctx.info_name} failed", exc_info=exception)


@click.group()
@click.option("--json", "json_output", is_flag=True, help="Output results in JSON format")
@click.option(
    "--path",
    "-p",
    type=click.Path(exists=True, file_okay=False),
    help="Start directory for workspace discovery (walks up to find .prompt-versions/)",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="prompt-version")
@click.pass_context
def cli(ctx, json_output: bool, path: Optional[str], verbose: bool):
    """Git-like version control for prompts.

    \b
    GETTING STARTED:
      1. prompt-version init                          # Create .prompt-versions/
      2. prompt-version commit prompt.txt -m "First"  # Record a version
      3. prompt-version log prompt.txt                # Show history

    \b
    A/B TESTING WITH BRANCHES:
      prompt-version branch prompt.txt variant-b
      prompt-version switch prompt.txt variant-b
      prompt-version commit prompt.txt -m "Try shorter instructions"
      prompt-version diff prompt.txt --v1 <id> --v2 <id>

    \b
    STORAGE:
      Content blobs: .prompt-versions/objects/<sha256>
      Version index: .prompt-versions/store.json
      Settings:      .prompt-versions/config.json
    """
    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output
    ctx.obj["verbose"] = verbose

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    start_dir = Path(path).resolve() if path else Path.cwd()
    workspace_root = ConfigManager.create_with_backtrack(start_dir).workspace_root

    exception_logger = ExceptionLogger.initialize(workspace_root)
    ctx.obj["exception_logger"] = exception_logger

    try:
        ctx.obj["core"] = VersionCore(base_path=workspace_root)
    except ValueError as e:
        _fail(ctx, str(e))

    if verbose and not json_output:
        console.print(f"📁 Workspace root: {workspace_root}", style="dim")


@cli.command()
@click.pass_context
@handle_errors
def init(ctx):
    """Initialize prompt versioning in the current directory."""
    core: VersionCore = ctx.obj["core"]
    result = core.init()

    if ctx.obj["json"]:
        _output_json(result.to_dict())
    elif result.success:
        console.print(f"✅ {result.message}", style="green", markup=False)
    elif result.error:
        _fail(ctx, result.error)
    else:
        # Already initialized is not a failure
        console.print(f"⚠️ {result.message}", style="yellow", markup=False)


@cli.command()
@click.argument("file", type=click.Path())
@click.option("--message", "-m", help="Commit message")
@click.option("--author", "-a", help="Author name")
@click.pass_context
@handle_errors
def commit(ctx, file: str, message: Optional[str], author: Optional[str]):
    """Save a new version of a prompt."""
    core = _core(ctx)
    message = message or core.config.default_message
    author = author or core.config.default_author

    result = core.commit(file, message, author)

    if ctx.obj["json"]:
        _output_json(result.to_dict())
        if not result.success:
            sys.exit(1)
    elif not result.success:
        _fail(ctx, result.error or "Commit failed")
    elif result.is_duplicate:
        console.print(
            f"⚠️ Content unchanged. Existing version: {result.version_id}",
            style="yellow",
        )
    else:
        console.print(f"✅ Committed: {result.version_id}", style="green")
        console.print(f"Message: {message}", style="dim", markup=False)


@cli.command()
@click.argument("file", type=click.Path())
@click.option("--number", "-n", type=int, help="Number of entries to show")
@click.pass_context
@handle_errors
def log(ctx, file: str, number: Optional[int]):
    """Show version history."""
    core = _core(ctx)
    limit = number if number is not None else core.config.log_limit
    entries = core.log(file, limit=limit)

    if ctx.obj["json"]:
        _output_json(
            {
                "file": file,
                "entries": [
                    {
                        "version": entry.version.model_dump(by_alias=True),
                        "isHead": entry.is_head,
                        "tags": entry.tags,
                    }
                    for entry in entries
                ],
            }
        )
    else:
        display_log(console, entries)


@cli.command()
@click.argument("file", type=click.Path())
@click.option("--v1", "version1", required=True, help="First version id")
@click.option("--v2", "version2", required=True, help="Second version id")
@click.pass_context
@handle_errors
def diff(ctx, file: str, version1: str, version2: str):
    """Compare two versions."""
    core = _core(ctx)
    result = core.diff(file, version1, version2)

    if not result:
        _fail(ctx, "One or both versions not found")
        return

    if ctx.obj["json"]:
        _output_json(
            {
                "file": file,
                "v1": {"id": result.v1.id, "timestamp": result.v1.timestamp},
                "v2": {"id": result.v2.id, "timestamp": result.v2.timestamp},
                "stats": {
                    "additions": result.additions,
                    "deletions": result.deletions,
                    "unchanged": result.unchanged,
                },
                "changes": [
                    {"type": change.kind, "value": change.value}
                    for change in result.changes
                ],
            }
        )
    else:
        display_diff(console, result)


@cli.command()
@click.argument("file", type=click.Path())
@click.argument("version")
@click.pass_context
@handle_errors
def checkout(ctx, file: str, version: str):
    """Restore a specific version or tag into the file."""
    core = _core(ctx)
    _report(ctx, core.checkout(file, version))


@cli.command()
@click.argument("file", type=click.Path())
@click.argument("tag_name")
@click.option("--version", "-v", "version_id", help="Version to tag (defaults to latest)")
@click.pass_context
@handle_errors
def tag(ctx, file: str, tag_name: str, version_id: Optional[str]):
    """Tag a version."""
    core = _core(ctx)
    _report(ctx, core.tag(file, tag_name, version_id))


@cli.command()
@click.argument("file", type=click.Path())
@click.argument("tag_name")
@click.pass_context
@handle_errors
def untag(ctx, file: str, tag_name: str):
    """Remove a tag."""
    core = _core(ctx)
    _report(ctx, core.untag(file, tag_name))


@cli.command()
@click.argument("file", type=click.Path())
@click.argument("branch_name")
@click.option("--from", "-f", "from_version", help="Create branch from specific version")
@click.option("--description", "-d", help="Branch description")
@click.pass_context
@handle_errors
def branch(
    ctx,
    file: str,
    branch_name: str,
    from_version: Optional[str],
    description: Optional[str],
):
    """Create a branch (for A/B testing)."""
    core = _core(ctx)
    _report(ctx, core.branch(file, branch_name, from_version, description))


@cli.command()
@click.argument("file", type=click.Path())
@click.argument("branch_name")
@click.pass_context
@handle_errors
def switch(ctx, file: str, branch_name: str):
    """Switch the active branch of a file."""
    core = _core(ctx)
    _report(ctx, core.switch_branch(file, branch_name))


@cli.command()
@click.argument("file", type=click.Path())
@click.pass_context
@handle_errors
def branches(ctx, file: str):
    """List all branches."""
    core = _core(ctx)
    branch_list = core.list_branches(file)
    status = core.status(file)

    if ctx.obj["json"]:
        _output_json(
            {
                "file": file,
                "currentBranch": status.current_branch,
                "branches": [b.model_dump(by_alias=True) for b in branch_list],
            }
        )
    else:
        display_branches(console, branch_list, status.current_branch)


@cli.command()
@click.argument("file", type=click.Path())
@click.pass_context
@handle_errors
def status(ctx, file: str):
    """Show status of a prompt file."""
    core = _core(ctx)
    result = core.status(file)

    if ctx.obj["json"]:
        _output_json(
            {
                "file": file,
                "tracked": result.tracked,
                "modified": result.modified,
                "versions": result.versions,
                "currentBranch": result.current_branch,
                "tags": result.tags,
                **({"error": result.error} if result.error else {}),
            }
        )
    else:
        display_status(console, file, result)


@cli.command()
@click.argument("file", type=click.Path())
@click.argument("version")
@click.pass_context
@handle_errors
def show(ctx, file: str, version: str):
    """Show content of a specific version."""
    core = _core(ctx)
    entry = core.get_version(file, version)

    if not entry:
        _fail(ctx, f"Version not found: {version}")
        return

    if ctx.obj["json"]:
        _output_json(
            {
                "file": file,
                "version": entry.metadata.model_dump(by_alias=True),
                "content": entry.content,
            }
        )
    else:
        display_version(console, entry)


@cli.command("list")
@click.pass_context
@handle_errors
def list_files(ctx):
    """List all tracked files."""
    core = _core(ctx)
    files = core.get_tracked_files()

    if ctx.obj["json"]:
        _output_json({"files": files})
    elif not files:
        console.print("No tracked files.", style="yellow")
    else:
        console.print("[bold]Tracked Files:[/bold]")
        for tracked in files:
            console.print(f"  {tracked}", style="cyan", markup=False)


def main():
    """Entry point for the prompt-version console script."""
    cli(obj={})


if __name__ == "__main__":
    main()
