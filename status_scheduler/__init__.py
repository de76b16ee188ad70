"""Status scheduler package.

This package contains modules for expanding recurring status windows,
resolving the active one, reconciling it with the remote Slack status on a
drift-free interval, and a small Flask state API.
"""

# Nothing to export at package import time; modules provide the functionality.
__all__ = []
