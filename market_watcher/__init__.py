"""
Market watcher - persistent subscription to the new-items feed.
Streams listing events into a human-readable log file.
"""

__version__ = "0.3.0"
