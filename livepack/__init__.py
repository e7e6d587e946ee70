"""livepack: incremental rebuilds of packed game-asset archives."""

__version__ = "0.1.0"
