"""Player profiles, persistence and statistics."""

__all__ = ["models", "stats", "store"]
