"""Multitune - mirror YouTube and Spotify playlists into one local library."""

__version__ = "0.1.0"
