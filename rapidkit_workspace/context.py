"""Application context.

Every service is constructed once, explicitly, by ``build_context`` and handed
to whoever needs it.  Hosts (the CLI, an editor integration, tests) own the
context's lifetime; nothing in the package holds module-level state.
"""

from __future__ import annotations

from dataclasses import dataclass

from rapidkit_workspace.execution.bridge import RuntimeResolver
from rapidkit_workspace.execution.engine import PythonEngine
from rapidkit_workspace.index import PackageIndex
from rapidkit_workspace.marker import MarkerCodec
from rapidkit_workspace.notify import LogNotifier, Notifier
from rapidkit_workspace.registry import WorkspaceRegistry
from rapidkit_workspace.resolver import WorkspaceRootResolver
from rapidkit_workspace.settings import WorkspaceSettings
from rapidkit_workspace.store.base import JsonDocument
from rapidkit_workspace.store.local import LocalJsonDocument
from rapidkit_workspace.usage import UsageTracker
from rapidkit_workspace.versions import VersionCache


@dataclass
class AppContext:
    """Wired services for one host process."""

    # -- Configuration ---------------------------------------------------------
    settings: WorkspaceSettings
    notifier: Notifier

    # -- Workspace state -------------------------------------------------------
    registry: WorkspaceRegistry
    resolver: WorkspaceRootResolver
    codec: MarkerCodec
    usage: UsageTracker

    # -- External tool ---------------------------------------------------------
    bridge: RuntimeResolver
    engine: PythonEngine
    index: PackageIndex
    versions: VersionCache


def _create_registry_store(settings: WorkspaceSettings) -> JsonDocument:
    return LocalJsonDocument(settings.registry_file)


def build_context(settings: WorkspaceSettings, *, notifier: Notifier | None = None) -> AppContext:
    """Construct all services from *settings*.

    The registry is not loaded here; call ``await ctx.registry.load()``
    before querying it.
    """
    notifier = notifier or LogNotifier()

    registry = WorkspaceRegistry(
        _create_registry_store(settings),
        notifier=notifier,
        discovery_dirs=settings.discovery_dirs,
    )
    codec = MarkerCodec()
    bridge = RuntimeResolver(
        tool=settings.tool_name,
        fetch_runner=settings.fetch_runner,
        timeout=settings.command_timeout,
    )
    index = PackageIndex(settings.package_name, index_url=settings.index_url, timeout=settings.index_timeout)

    return AppContext(
        settings=settings,
        notifier=notifier,
        registry=registry,
        resolver=WorkspaceRootResolver(registry, strict_prefix=settings.resolver_strict_prefix),
        codec=codec,
        usage=UsageTracker(codec, registry, client_version=settings.client_version),
        bridge=bridge,
        engine=PythonEngine(python_commands=settings.python_commands, timeout=settings.engine_timeout),
        index=index,
        versions=VersionCache(
            bridge,
            index,
            ttl=settings.version_cache_ttl,
            probe_timeout=settings.version_timeout,
        ),
    )
