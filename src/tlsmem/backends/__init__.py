"""Backend selection: candidate catalog, manifest overlay, fetch and build collaborators.

Built-in candidates are added to ``tlsmem.core.CandidateRegistry`` by
``ensure_registered``.
"""

from ..core.registry import CandidateRegistry
from .build import CargoBuilder
from .fetch import GitFetcher
from .manifest import ManifestOverlay
from .selector import BackendSelector


def ensure_registered() -> None:
    """Populate the candidate registry with the built-in catalog."""
    from .catalog import BUILTIN_CANDIDATES

    registered = {key for key, _ in CandidateRegistry.items()}
    for candidate in BUILTIN_CANDIDATES:
        if candidate.name not in registered:
            CandidateRegistry.register_value(candidate.name, candidate)


__all__ = [
    "BackendSelector",
    "CargoBuilder",
    "GitFetcher",
    "ManifestOverlay",
    "ensure_registered",
]
