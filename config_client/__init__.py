"""
Config Client

Typed configuration fetched from a config server, validated into
immutable snapshots and refreshed at runtime.
"""

__version__ = "0.1.0"
