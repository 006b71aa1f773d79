"""
Watcher services: token exchange, feed session, decoding, listen loop, supervisor.
"""
