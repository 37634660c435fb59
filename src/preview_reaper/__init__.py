"""
Preview Reaper - reclaims idle preview environments from a Kubernetes cluster.

This package decides which per-branch preview namespaces are abandoned,
based on git branches and database activity signals, and tears them down.
"""

__version__ = "0.1.0"

from preview_reaper.config import Config, load_config

__all__ = [
    "__version__",
    "Config",
    "load_config",
]
