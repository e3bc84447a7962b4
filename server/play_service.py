"""REST service hosting Klondike games with optional wagers."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Callable, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from klondike.game import GameOptions, GamePhase, GameSequenceError, IllegalMove, wall_clock_ms
from klondike.piles import parse_ref, serialize_ref
from klondike.service import GameService
from wager.contracts import ContractConfigError, get_contract, validate_all_contracts
from wager.economy import (
    PRACTICE_WIN_COINS,
    InsufficientFunds,
    PlayerWallet,
    add_coins,
    check_bankruptcy,
    create_wallet,
    grant_daily_coins,
)
from wager.progression import PlayerProgression, create_progression, is_stake_unlocked
from wager.session import WagerSelection, WagerSessionResult, begin_wager, complete_wager

LOGGER = logging.getLogger("play_service")


class StartRequest(BaseModel):
    seed: Optional[str] = None
    turn_count: int = Field(3, description="Cards per draw; wagers use the contract's draw mode.")
    match_duration_seconds: int = Field(300, gt=0)
    contract_id: Optional[str] = None
    stake: Optional[int] = None


class MoveRequest(BaseModel):
    from_pile: dict = Field(alias="from")
    to_pile: dict = Field(alias="to")


class SessionState:
    def __init__(self, service: GameService, selection: Optional[WagerSelection]) -> None:
        self.service = service
        self.selection = selection
        self.settlement: Optional[WagerSessionResult] = None
        self.practice_reward = 0
        self.settled = False


@dataclass
class Ledger:
    """Single-player host: one wallet and progression for the process."""

    wallet: PlayerWallet = field(default_factory=create_wallet)
    progression: PlayerProgression = field(default_factory=create_progression)


sessions: Dict[str, SessionState] = {}
ledger = Ledger()

# Session timers read this; tests swap it for a controllable clock.
clock: Callable[[], int] = wall_clock_ms


def session_clock() -> int:
    return clock()


def check_contracts() -> None:
    report = validate_all_contracts()
    if report:
        raise ContractConfigError(f"Built-in contracts failed validation: {report}")
    LOGGER.info("Built-in contracts validated")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    check_contracts()
    yield


app = FastAPI(title="Klondike Wager Service", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def reset_ledger(wallet: Optional[PlayerWallet] = None, progression: Optional[PlayerProgression] = None) -> None:
    ledger.wallet = wallet or create_wallet()
    ledger.progression = progression or create_progression()


def serialize_ledger() -> Dict[str, object]:
    return {
        "coins": ledger.wallet.coins,
        "rank": ledger.progression.rank.value,
        "xp": ledger.progression.xp,
        "winStreak": ledger.progression.win_streak,
    }


def serialize_settlement(result: WagerSessionResult) -> Dict[str, object]:
    return {
        "outcome": result.wager_result.outcome.value,
        "payoutCoins": result.wager_result.payout_coins,
        "netCoins": result.wager_result.net_coins,
        "xp": result.wager_result.xp,
        "streakBonusCoins": result.streak_bonus_coins,
        "totalPayout": result.total_payout,
        "piBreakdown": asdict(result.pi_breakdown),
    }


def serialize_session(session: SessionState) -> Dict[str, object]:
    view = asdict(session.service.view())
    return {
        "game": view,
        "wager": None
        if session.selection is None
        else {"contractId": session.selection.contract.id, "stake": session.selection.stake},
        "settlement": serialize_settlement(session.settlement) if session.settlement else None,
        "practiceReward": session.practice_reward,
        "ledger": serialize_ledger(),
    }


def ensure_session(session_id: str) -> SessionState:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def settle_if_finished(session: SessionState) -> None:
    game = session.service.game
    if session.settled or game is None or game.phase != GamePhase.FINISHED:
        return
    session.settled = True
    state = game.get_state()
    if session.selection is None:
        if state.is_solved():
            session.practice_reward = PRACTICE_WIN_COINS
            ledger.wallet = add_coins(ledger.wallet, PRACTICE_WIN_COINS)
            LOGGER.info("Practice win on %s credited %d coins", state.seed, PRACTICE_WIN_COINS)
        return
    result = complete_wager(
        session.selection,
        state,
        ledger.wallet,
        ledger.progression,
        session.service.hint_count,
    )
    ledger.wallet = result.updated_wallet
    ledger.progression = result.updated_progression
    session.settlement = result
    LOGGER.info("Settled wager outcome=%s payout=%d", result.wager_result.outcome.value, result.total_payout)


def refresh(session: SessionState) -> None:
    """Finish an expired game and settle it before anything else reads or acts on it."""
    session.service.poll_timer()
    settle_if_finished(session)


def ensure_running(session: SessionState) -> None:
    refresh(session)
    if not session.service.has_active_game():
        raise HTTPException(status_code=409, detail="Game is finished; no further actions are accepted.")


def run_action(session: SessionState, action, *, require_running: bool = True) -> Dict[str, object]:
    if require_running:
        ensure_running(session)
    else:
        refresh(session)
    try:
        action()
    except GameSequenceError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except IllegalMove as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    refresh(session)
    return serialize_session(session)


@app.post("/ledger/daily")
def claim_daily() -> Dict[str, object]:
    today = date.today()
    wallet, granted = grant_daily_coins(ledger.wallet, today)
    wallet, bailed = check_bankruptcy(wallet, today)
    ledger.wallet = wallet
    return {"granted": granted, "bailedOut": bailed, "ledger": serialize_ledger()}


@app.post("/session/start")
def start_session(request: StartRequest) -> Dict[str, object]:
    selection: Optional[WagerSelection] = None
    if request.contract_id is not None:
        contract = get_contract(request.contract_id)
        if contract is None:
            raise HTTPException(status_code=404, detail=f"Unknown contract {request.contract_id}")
        stake = request.stake or 0
        if stake not in contract.stake_tiers or not is_stake_unlocked(ledger.progression.rank, stake):
            raise HTTPException(status_code=400, detail=f"Stake {stake} is not available")
        try:
            ledger.wallet = begin_wager(ledger.wallet, stake)
        except InsufficientFunds as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        selection = WagerSelection(contract=contract, stake=stake)
        options = GameOptions(
            match_duration_seconds=contract.timer_seconds,
            turn_count=contract.rules.draw_mode,
            now=session_clock,
        )
    else:
        try:
            options = GameOptions(
                match_duration_seconds=request.match_duration_seconds,
                turn_count=request.turn_count,
                now=session_clock,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    service = GameService(options)
    service.start(request.seed)
    session = SessionState(service=service, selection=selection)
    session_id = uuid.uuid4().hex
    sessions[session_id] = session
    return {"session_id": session_id, "state": serialize_session(session)}


@app.get("/session/{session_id}")
def get_session(session_id: str) -> Dict[str, object]:
    session = ensure_session(session_id)
    refresh(session)
    return serialize_session(session)


@app.post("/session/{session_id}/draw")
def draw(session_id: str) -> Dict[str, object]:
    session = ensure_session(session_id)
    return run_action(session, session.service.draw)


@app.post("/session/{session_id}/move")
def move(session_id: str, request: MoveRequest) -> Dict[str, object]:
    session = ensure_session(session_id)
    try:
        from_ref = parse_ref(request.from_pile)
        to_ref = parse_ref(request.to_pile)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return run_action(session, lambda: session.service.move(from_ref, to_ref))


@app.post("/session/{session_id}/auto-move")
def auto_move(session_id: str) -> Dict[str, object]:
    session = ensure_session(session_id)
    return run_action(session, session.service.auto_move)


@app.post("/session/{session_id}/hint")
def hint(session_id: str) -> Dict[str, object]:
    session = ensure_session(session_id)
    if session.selection is not None and not session.selection.contract.rules.hint_allowed:
        raise HTTPException(status_code=400, detail="Hints are disabled for this contract")
    ensure_running(session)
    try:
        suggestion = session.service.hint()
    except GameSequenceError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    state = serialize_session(session)
    state["hint"] = (
        None
        if suggestion is None
        else {"from": serialize_ref(suggestion.from_ref), "to": serialize_ref(suggestion.to_ref)}
    )
    return state


@app.post("/session/{session_id}/finish")
def finish(session_id: str) -> Dict[str, object]:
    session = ensure_session(session_id)
    return run_action(session, session.service.finish, require_running=False)
