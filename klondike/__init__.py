"""Core Klondike engine package."""

__all__ = [
    "cards",
    "deck",
    "piles",
    "state",
    "game",
    "service",
]
