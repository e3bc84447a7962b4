"""Aggregate player statistics."""

from __future__ import annotations

from .models import GameResult, PlayerStats


def empty_stats(player_id: str) -> PlayerStats:
    return PlayerStats(player_id=player_id)


def update_stats(stats: PlayerStats, result: GameResult) -> PlayerStats:
    """Return ``stats`` with ``result`` folded in."""
    updated = stats.model_copy()
    updated.games_played += 1
    if result.won:
        updated.wins += 1
        if updated.fastest_win_seconds is None or result.duration_seconds < updated.fastest_win_seconds:
            updated.fastest_win_seconds = result.duration_seconds
    else:
        updated.losses += 1

    if updated.best_score is None or result.score > updated.best_score:
        updated.best_score = result.score
    if updated.worst_score is None or result.score < updated.worst_score:
        updated.worst_score = result.score
    return updated
