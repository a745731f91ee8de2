"""
reaper - tiered retention for timestamped backups

Thins a directory of RFC 3339-named backups down to one survivor per
time chunk across a cascade of retention tiers.
"""

try:
    from importlib.metadata import version

    __version__ = version("reaper")
except Exception:
    __version__ = "0.0.0"  # Fallback for development
