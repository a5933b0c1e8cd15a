"""RapidKit workspace bridge.

Workspace discovery, marker handling, a persistent workspace registry and a
tiered runtime bridge for invoking the ``rapidkit`` CLI.
"""

__version__ = "0.1.0"
