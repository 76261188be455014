"""
Core system components for connectivity, lifecycle state and logging
"""

from .connectivity import ConnectivityMonitor, probe_reachability

__all__ = ["ConnectivityMonitor", "probe_reachability"]
