"""dbctl - replica role and cluster coordination sidecar."""

__version__ = "0.1.0"
