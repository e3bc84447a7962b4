"""Pile references used to address move sources and destinations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .cards import Suit

TABLEAU_COLUMNS = 7


@dataclass(frozen=True)
class StockRef:
    pass


@dataclass(frozen=True)
class WasteRef:
    pass


@dataclass(frozen=True)
class FoundationRef:
    suit: Suit


@dataclass(frozen=True)
class TableauRef:
    index: int
    # First card of the lifted run; ``None`` means the top card only.
    position: Optional[int] = None


PileRef = Union[StockRef, WasteRef, FoundationRef, TableauRef]

STOCK = StockRef()
WASTE = WasteRef()


def pile_name(ref: PileRef) -> str:
    if isinstance(ref, StockRef):
        return "stock"
    if isinstance(ref, WasteRef):
        return "waste"
    if isinstance(ref, FoundationRef):
        return "foundation"
    if isinstance(ref, TableauRef):
        return "tableau"
    raise TypeError(f"Unknown pile reference: {ref!r}")


def serialize_ref(ref: PileRef) -> dict[str, object]:
    payload: dict[str, object] = {"pile": pile_name(ref)}
    if isinstance(ref, FoundationRef):
        payload["suit"] = ref.suit.value
    elif isinstance(ref, TableauRef):
        payload["index"] = ref.index
        if ref.position is not None:
            payload["position"] = ref.position
    return payload


def parse_ref(payload: Mapping[str, object]) -> PileRef:
    """Build a pile reference from its serialized dict form."""
    pile = str(payload.get("pile", "")).lower()
    if pile == "stock":
        return STOCK
    if pile == "waste":
        return WASTE
    if pile == "foundation":
        if "suit" not in payload:
            raise ValueError("Foundation reference requires a suit.")
        return FoundationRef(Suit(str(payload["suit"]).upper()))
    if pile == "tableau":
        if "index" not in payload:
            raise ValueError("Tableau reference requires an index.")
        position = payload.get("position")
        return TableauRef(int(payload["index"]), None if position is None else int(position))
    raise ValueError(f"Unknown pile: {pile!r}")


def parse_ref_token(token: str) -> PileRef:
    """Parse compact CLI tokens: ``s``, ``w``, ``f:H``, ``t3`` or ``t3:1``."""
    token = token.strip()
    lowered = token.lower()
    if lowered in ("s", "stock"):
        return STOCK
    if lowered in ("w", "waste"):
        return WASTE
    if lowered.startswith("f"):
        suit = token.split(":", 1)[1] if ":" in token else token[1:]
        return FoundationRef(Suit(suit.upper()))
    if lowered.startswith("t"):
        body = lowered[1:]
        if ":" in body:
            index, position = body.split(":", 1)
            return TableauRef(int(index), int(position))
        return TableauRef(int(body))
    raise ValueError(f"Unknown pile token: {token!r}")
