"""
poolctl

Command line tool for creating, listing, describing and deleting machine pools
on classic clusters and node pools on hosted control plane clusters.
"""

__version__ = "0.1.0"

# Import main components for easy access
from .core.types import Topology, FlagSource
from .core.models import Cluster, CreationRequest, UserOptions

__all__ = [
    "Topology",
    "FlagSource",
    "Cluster",
    "CreationRequest",
    "UserOptions",
]
