import asyncio
import json
import os
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

import click

from rapidkit_workspace.context import AppContext, build_context
from rapidkit_workspace.execution.engine import list_modules
from rapidkit_workspace.log import setup_logging
from rapidkit_workspace.marker import dump_marker
from rapidkit_workspace.registry import WorkspaceNotFoundError
from rapidkit_workspace.settings import get_settings
from rapidkit_workspace.validation import validate_workspace

R = TypeVar("R")


class ClickNotifier:
    """Echo user-facing messages to stderr."""

    def error(self, message: str) -> None:
        click.secho(message, fg="red", err=True)

    def warning(self, message: str) -> None:
        click.secho(message, fg="yellow", err=True)


def _with_registry(fn: Callable[..., Awaitable[R]]) -> Callable[..., R]:
    """Run an async command body with a loaded registry."""

    @wraps(fn)
    def wrapper(app: AppContext, *args: Any, **kwargs: Any) -> R:
        async def _main() -> R:
            try:
                await app.registry.load()
            except PermissionError as exc:
                raise click.ClickException(f"Cannot read workspace registry: {exc}") from exc
            return await fn(app, *args, **kwargs)

        return asyncio.run(_main())

    return wrapper


async def _workspace_or_cwd(app: AppContext, workspace: str | None) -> str:
    if workspace is not None:
        return os.path.abspath(workspace)
    root = await app.resolver.find_root(os.getcwd())
    if root is None:
        raise click.ClickException("Not inside a RapidKit workspace; pass a workspace path.")
    return str(root)


@click.group()
@click.pass_context
def main(ctx: click.Context) -> None:
    """RapidKit workspace bridge - find workspaces and run the rapidkit CLI."""
    if ctx.obj is None:
        settings = get_settings()
        setup_logging(settings.log_level, settings.log_levels)
        ctx.obj = build_context(settings, notifier=ClickNotifier())


# ---------------------------------------------------------------------------
# Root resolution
# ---------------------------------------------------------------------------


@main.command()
@click.argument("path", default=".", type=click.Path())
@click.pass_obj
@_with_registry
async def root(app: AppContext, path: str) -> None:
    """Print the workspace root that contains PATH."""
    found = await app.resolver.find_root(path)
    if found is None:
        raise click.ClickException(f"No workspace found for {os.path.abspath(path)}")
    click.echo(str(found))


# ---------------------------------------------------------------------------
# Registry management
# ---------------------------------------------------------------------------


@main.group()
def workspaces() -> None:
    """Manage the workspace registry."""


@workspaces.command("list")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print registry records as JSON.")
@click.option("--limit", default=None, type=int, help="Only show the N most recently used.")
@click.pass_obj
@_with_registry
async def list_workspaces(app: AppContext, as_json: bool, limit: int | None) -> None:
    """List registered workspaces, most recently used first."""
    records = app.registry.recent(limit)
    if as_json:
        payload = [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records]
        click.echo(json.dumps(payload, indent=2))
        return
    if not records:
        click.echo("No workspaces registered.")
        return
    for r in records:
        click.echo(f"{r.name}\t{r.path}\t{r.mode}\t{len(r.projects)} project(s)")


@workspaces.command()
@click.argument("path", type=click.Path())
@click.pass_obj
@_with_registry
async def add(app: AppContext, path: str) -> None:
    """Register PATH if it is a workspace."""
    record = await app.registry.add(path)
    if record is None:
        if os.path.exists(path):
            raise click.ClickException(f"Not a RapidKit workspace: {os.path.abspath(path)}")
        raise click.exceptions.Exit(1)
    click.echo(f"Registered {record.name} ({record.path}).")


@workspaces.command()
@click.argument("path", type=click.Path())
@click.pass_obj
@_with_registry
async def remove(app: AppContext, path: str) -> None:
    """Unregister PATH.  Files on disk are left alone."""
    if await app.registry.remove(path):
        click.echo(f"Removed {os.path.abspath(path)}.")
    else:
        click.echo(f"{os.path.abspath(path)} was not registered.")


@workspaces.command()
@click.argument("path", type=click.Path())
@click.pass_obj
@_with_registry
async def touch(app: AppContext, path: str) -> None:
    """Mark PATH as just used."""
    try:
        app.registry.require(path)
    except WorkspaceNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    await app.registry.touch(path)


@workspaces.command()
@click.argument("path", type=click.Path())
@click.pass_obj
@_with_registry
async def refresh(app: AppContext, path: str) -> None:
    """Re-scan PATH for its mode and child projects."""
    record = await app.registry.update(path)
    if record is None:
        raise click.ClickException(str(WorkspaceNotFoundError(os.path.abspath(path))))
    click.echo(f"{record.name}: {record.mode}, {len(record.projects)} project(s)")


@workspaces.command("open")
@click.argument("path", type=click.Path(exists=True, file_okay=False))
@click.pass_obj
@_with_registry
async def open_workspace(app: AppContext, path: str) -> None:
    """Record that PATH was opened (registry and marker usage stats)."""
    if app.registry.get(path) is None:
        await app.registry.add(path)
    await app.usage.track_open(path)


@workspaces.command()
@click.option("--folder", "folders", multiple=True, type=click.Path(), help="Extra folder to check (repeatable).")
@click.pass_obj
@_with_registry
async def discover(app: AppContext, folders: tuple[str, ...]) -> None:
    """Scan the discovery directories and register any workspaces found."""
    found = await app.registry.auto_discover(folders)
    for record in found:
        click.echo(f"Discovered {record.name} ({record.path})")
    click.echo(f"{len(found)} new workspace(s).")


# ---------------------------------------------------------------------------
# Markers
# ---------------------------------------------------------------------------


@main.group()
def marker() -> None:
    """Inspect and create workspace markers."""


@marker.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
@click.pass_obj
@_with_registry
async def show(app: AppContext, workspace: str) -> None:
    """Print the marker of WORKSPACE."""
    found = await app.codec.read(workspace)
    if found is None:
        raise click.ClickException(f"No readable marker in {os.path.abspath(workspace)}")
    click.echo(dump_marker(found))
    if not app.codec.is_valid(found):
        app.notifier.warning("warning: marker is not recognised as a RapidKit workspace")


@marker.command()
@click.argument("workspace", type=click.Path(exists=True, file_okay=False))
@click.option("--name", default=None, help="Workspace name (default: directory name).")
@click.pass_obj
@_with_registry
async def init(app: AppContext, workspace: str, name: str | None) -> None:
    """Write a current-format marker to WORKSPACE, keeping existing metadata."""
    written = await app.codec.create(workspace, name=name, version=app.settings.client_version)
    click.echo(dump_marker(written))


# ---------------------------------------------------------------------------
# External tool
# ---------------------------------------------------------------------------


@main.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.option("--workspace", default=None, type=click.Path(), help="Workspace to run in (default: from cwd).")
@click.option("--timeout", default=None, type=float, help="Per-attempt timeout in seconds.")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_obj
@_with_registry
async def run(app: AppContext, workspace: str | None, timeout: float | None, args: tuple[str, ...]) -> None:
    """Run `rapidkit ARGS` through the best available runtime."""
    if workspace is None:
        found = await app.resolver.find_root(os.getcwd())
        workspace = str(found) if found is not None else None

    result = await app.bridge.run(list(args), workspace, timeout=timeout)
    if result.stdout:
        click.echo(result.stdout, nl=False)
    if result.stderr:
        click.echo(result.stderr, nl=False, err=True)
    if not result.ok:
        raise click.exceptions.Exit(result.exit_code)


@main.command()
@click.option("--workspace", default=None, type=click.Path(), help="Workspace to resolve for (default: from cwd).")
@click.pass_obj
@_with_registry
async def runtime(app: AppContext, workspace: str | None) -> None:
    """Show which runtime tier `run` would use, without running anything."""
    if workspace is None:
        found = await app.resolver.find_root(os.getcwd())
        workspace = str(found) if found is not None else None
    preferred = await app.bridge.preferred(workspace)
    if preferred is None:
        raise click.ClickException("No runtime available")
    tier, invocation = preferred
    click.echo(f"{tier}\t{' '.join(invocation.command)}")


@main.command()
@click.argument("workspace", required=False, type=click.Path())
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the version record as JSON.")
@click.option("--refresh", is_flag=True, default=False, help="Ignore any cached result.")
@click.pass_obj
@_with_registry
async def version(app: AppContext, workspace: str | None, as_json: bool, refresh: bool) -> None:
    """Show the RapidKit core version for WORKSPACE (default: from cwd)."""
    workspace = await _workspace_or_cwd(app, workspace)
    if refresh:
        app.versions.invalidate(workspace)
    info = await app.versions.get(workspace)
    if as_json:
        click.echo(info.model_dump_json(indent=2))
    else:
        click.echo(app.versions.status_message(info))


@main.command()
@click.argument("workspace", type=click.Path())
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the report as JSON.")
@click.pass_obj
@_with_registry
async def validate(app: AppContext, workspace: str, as_json: bool) -> None:
    """Check that WORKSPACE has a virtualenv with the RapidKit core installed."""
    report = await validate_workspace(workspace, app.bridge, timeout=app.settings.version_timeout)
    click.echo(report.model_dump_json(indent=2) if as_json else report.summary())
    if not report.valid:
        raise click.exceptions.Exit(1)


@main.command()
@click.option("--workspace", default=None, type=click.Path(), help="Workspace to run in (default: from cwd).")
@click.pass_obj
@_with_registry
async def modules(app: AppContext, workspace: str | None) -> None:
    """List available RapidKit modules as JSON."""
    if workspace is None:
        found = await app.resolver.find_root(os.getcwd())
        workspace = str(found) if found is not None else None
    result = await list_modules(app.bridge, workspace)
    if not result.ok or result.data is None:
        raise click.ClickException("Could not list modules (unsupported or failed `modules list` call)")
    click.echo(json.dumps(result.data.modules, indent=2))


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@click.pass_obj
@_with_registry
async def detect(app: AppContext, path: str) -> None:
    """Ask the Python engine whether PATH is a RapidKit project."""
    result = await app.engine.detect_project(os.path.abspath(path))
    if not result.ok or result.data is None:
        raise click.ClickException("Python engine unavailable or returned an unsupported response")
    click.echo(result.data.model_dump_json(indent=2, by_alias=True))


if __name__ == "__main__":
    main()
