"""Wager pipeline: contracts, resolver, economy, progression and sessions."""

__all__ = [
    "contracts",
    "contract_schema",
    "resolver",
    "economy",
    "progression",
    "session",
    "offers",
]
