"""git-activity-mirror: mirror commit activity between git hosting platforms.

Only commit metadata is read from source platforms, and only content-free
synthetic commits are written to target platforms.
"""

__version__ = "0.1.0"
