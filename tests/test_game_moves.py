from types import MappingProxyType

import pytest

from klondike.cards import ACE, KING, Card, Suit
from klondike.deck import shuffled_deck
from klondike.game import (
    GameOptions,
    GamePhase,
    GameSequenceError,
    IllegalMove,
    KlondikeGame,
)
from klondike.piles import STOCK, WASTE, FoundationRef, TableauRef
from klondike.state import AutoMove


class FakeClock:
    def __init__(self, now_ms: int = 1_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: int) -> None:
        self.now_ms += seconds * 1000


def dealt_game(seed: str, clock: FakeClock | None = None, **options) -> KlondikeGame:
    game = KlondikeGame(seed, GameOptions(now=clock or FakeClock(), **options))
    game.deal()
    return game


def ace_in_first_column_seed() -> str:
    for index in range(500):
        seed = f"ace-{index}"
        if shuffled_deck(seed)[0].rank == ACE:
            return seed
    raise AssertionError("no seed deals an ace into column 0")


def fits(card: Card, top: Card) -> bool:
    return card.color is not top.color and card.rank == top.rank - 1


def tableau_pair_seed():
    """Find a deal where the top of a covered column fits on another column."""
    for index in range(500):
        seed = f"pair-{index}"
        tableau = dealt_game(seed).get_state().tableau
        for src in range(1, 7):
            for dst in range(7):
                if dst != src and fits(tableau[src][-1], tableau[dst][-1]):
                    return seed, src, dst
    raise AssertionError("no seed offers a tableau move")


def test_ace_from_single_card_column_scores_and_clears():
    seed = ace_in_first_column_seed()
    game = dealt_game(seed)
    ace = game.get_state().tableau[0][0]

    state = game.move_card(TableauRef(0), FoundationRef(ace.suit))

    assert state.score.base_score == 150
    assert state.column_clears == 1
    assert state.tableau[0] == ()
    assert state.foundations[ace.suit][-1].id == ace.id
    assert state.last_move.points_delta == 150
    assert state.last_move.moved_card_ids == (ace.id,)
    assert state.last_move.uncovered_card_id is None


def test_auto_moves_list_available_aces():
    seed = ace_in_first_column_seed()
    game = dealt_game(seed)
    ace = game.get_state().tableau[0][0]
    assert AutoMove(TableauRef(0), FoundationRef(ace.suit)) in game.can_auto_move_to_foundation()


def test_tableau_move_uncovers_card():
    seed, src, dst = tableau_pair_seed()
    game = dealt_game(seed)
    before = game.get_state()

    state = game.move_card(TableauRef(src), TableauRef(dst))

    assert len(state.tableau[src]) == len(before.tableau[src]) - 1
    assert state.tableau[src][-1].face_up
    assert state.tableau[dst][-1].id == before.tableau[src][-1].id
    assert state.score.base_score == 20
    assert state.last_move.uncovered_card_id == state.tableau[src][-1].id
    assert len({card.id for card in state.all_cards()}) == 52


def test_moves_conserve_cards():
    game = dealt_game("conserve", turn_count=1)
    for _ in range(30):
        game.draw_from_stock()
        for move in game.can_auto_move_to_foundation():
            game.move_card(move.from_ref, move.to_ref)
            break
    cards = game.get_state().all_cards()
    assert len(cards) == 52
    assert len({card.id for card in cards}) == 52


def test_stock_source_and_destination_are_illegal():
    game = dealt_game("stock")
    game.draw_from_stock()
    with pytest.raises(IllegalMove):
        game.move_card(STOCK, TableauRef(0))
    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(0), STOCK)
    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(0), WASTE)


def test_invalid_sources_are_rejected():
    game = dealt_game("sources")
    with pytest.raises(IllegalMove):
        game.move_card(WASTE, TableauRef(0))
    with pytest.raises(IllegalMove):
        game.move_card(FoundationRef(Suit.HEARTS), TableauRef(0))
    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(6, 0), TableauRef(0))
    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(7), TableauRef(0))
    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(2, 9), TableauRef(0))
    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(3), TableauRef(3))
    assert game.get_state().move_count == 0


def test_runs_and_foundation_rules():
    game = dealt_game("runs")
    game._tableau[0] = [Card(Suit.SPADES, KING, True), Card(Suit.HEARTS, 12, True)]
    game._tableau[1] = []

    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(0, 0), FoundationRef(Suit.SPADES))

    state = game.move_card(TableauRef(0, 0), TableauRef(1))
    assert [card.id for card in state.tableau[1]] == ["KS", "QH"]
    assert state.column_clears == 1
    assert state.score.base_score == 50

    game._tableau[2] = [Card(Suit.CLUBS, KING, True), Card(Suit.SPADES, 12, True)]
    with pytest.raises(IllegalMove):
        game.move_card(TableauRef(2, 0), TableauRef(0))


def test_waste_card_moves_to_foundation():
    game = dealt_game("waste-foundation")
    game._waste = [Card(Suit.CLUBS, ACE, True)]

    state = game.move_card(WASTE, FoundationRef(Suit.CLUBS))

    assert state.waste == ()
    assert [card.id for card in state.foundations[Suit.CLUBS]] == ["AC"]
    assert state.score.base_score == 100
    assert state.last_move.from_ref == WASTE


def test_foundation_top_moves_back_to_tableau():
    game = dealt_game("foundation-back")
    game._foundations[Suit.HEARTS] = [Card(Suit.HEARTS, rank, True) for rank in range(1, 6)]
    game._tableau[0] = [Card(Suit.SPADES, 6, True)]

    state = game.move_card(FoundationRef(Suit.HEARTS), TableauRef(0))

    assert [card.id for card in state.foundations[Suit.HEARTS]] == ["AH", "2H", "3H", "4H"]
    assert [card.id for card in state.tableau[0]] == ["6S", "5H"]
    assert state.score.base_score == 0
    assert state.move_count == 1


def test_foundation_rejects_wrong_rank_or_suit_without_changing_state():
    game = dealt_game("foundation-rules")

    cases = [
        ([], Card(Suit.HEARTS, 2, True), Suit.HEARTS),
        ([Card(Suit.HEARTS, ACE, True)], Card(Suit.HEARTS, 3, True), Suit.HEARTS),
        ([Card(Suit.HEARTS, ACE, True)], Card(Suit.DIAMONDS, 2, True), Suit.HEARTS),
        ([], Card(Suit.DIAMONDS, ACE, True), Suit.HEARTS),
    ]
    for foundation, card, suit in cases:
        game._foundations[suit] = list(foundation)
        game._waste = [card]
        before = game.get_state()

        with pytest.raises(IllegalMove):
            game.move_card(WASTE, FoundationRef(suit))

        assert game.get_state() == before
    assert game.get_state().move_count == 0


def test_only_kings_fill_empty_columns():
    game = dealt_game("kings")
    game._tableau[0] = []
    game._waste = [Card(Suit.HEARTS, 12, True)]
    with pytest.raises(IllegalMove):
        game.move_card(WASTE, TableauRef(0))
    game._waste = [Card(Suit.HEARTS, KING, True)]
    state = game.move_card(WASTE, TableauRef(0))
    assert state.tableau[0][-1].id == "KH"


def test_recycle_applies_penalty_once_and_restores_order():
    game = dealt_game("recycle", redeal_penalty_points=50)
    first = game.draw_from_stock()
    for _ in range(7):
        game.draw_from_stock()
    state = game.get_state()
    assert state.stock == ()
    assert len(state.waste) == 24

    state = game.draw_from_stock()
    assert len(state.stock) == 24
    assert state.waste == ()
    assert not any(card.face_up for card in state.stock)
    assert state.score.base_score == -50
    assert state.last_move.from_ref == STOCK
    assert state.last_move.to_ref == STOCK
    assert state.last_move.points_delta == -50

    again = game.draw_from_stock()
    assert again.waste[-1].id == first.waste[-1].id
    assert again.score.base_score == -50


def test_recycle_without_penalty_costs_nothing():
    game = dealt_game("free-recycle")
    for _ in range(9):
        game.draw_from_stock()
    state = game.get_state()
    assert len(state.stock) == 24
    assert state.score.base_score == 0
    assert state.move_count == 9


def test_efficiency_bonus_counts_moves():
    game = dealt_game("efficient", turn_count=1)
    for _ in range(10):
        game.draw_from_stock()
    state = game.finish()
    assert state.move_count == 10
    assert state.score.efficiency_bonus == 950
    assert state.score.time_bonus == 0
    assert state.score.total_score == 950


def test_efficiency_bonus_floors_at_zero():
    game = dealt_game("wasteful", turn_count=1)
    for _ in range(200):
        game.draw_from_stock()
    assert game.finish().score.efficiency_bonus == 0


def test_time_bonus_uses_remaining_time():
    clock = FakeClock()
    seed = ace_in_first_column_seed()
    game = dealt_game(seed, clock)
    ace = game.get_state().tableau[0][0]
    game.move_card(TableauRef(0), FoundationRef(ace.suit))

    clock.advance(60)
    state = game.finish()

    assert state.time_elapsed_seconds == 60
    assert state.time_remaining_seconds == 240
    assert state.score.time_bonus == 120
    assert state.score.efficiency_bonus == 995
    assert state.score.total_score == 150 + 120 + 995


def test_bonuses_hidden_until_finish():
    seed = ace_in_first_column_seed()
    game = dealt_game(seed)
    ace = game.get_state().tableau[0][0]
    state = game.move_card(TableauRef(0), FoundationRef(ace.suit))
    assert state.score.time_bonus == 0
    assert state.score.efficiency_bonus == 0
    assert state.score.total_score == 150


def test_timer_expiry():
    clock = FakeClock()
    game = dealt_game("timer", clock)
    assert not game.is_time_expired()

    clock.advance(301)
    assert game.is_time_expired()
    state = game.finish()
    assert state.time_remaining_seconds == 0
    assert state.time_elapsed_seconds == 301
    assert state.score.time_bonus == 0
    assert not game.is_time_expired()


def test_finish_is_idempotent_and_locks_the_game():
    clock = FakeClock()
    game = dealt_game("finish", clock)
    first = game.finish()
    clock.advance(30)
    second = game.finish()

    assert game.phase == GamePhase.FINISHED
    assert second.finished_at_ms == first.finished_at_ms
    assert second.score == first.score
    assert second.time_elapsed_seconds == first.time_elapsed_seconds
    assert game.can_auto_move_to_foundation() == []
    with pytest.raises(GameSequenceError):
        game.draw_from_stock()
    with pytest.raises(GameSequenceError):
        game.move_card(TableauRef(0), TableauRef(1))


def test_placing_last_card_finishes_the_game():
    game = dealt_game("solve")
    for suit in Suit:
        game._foundations[suit] = [Card(suit, rank, True) for rank in range(1, 14)]
    game._foundations[Suit.HEARTS].pop()
    game._tableau[0] = [Card(Suit.HEARTS, KING, True)]

    state = game.move_card(TableauRef(0), FoundationRef(Suit.HEARTS))

    assert game.phase == GamePhase.FINISHED
    assert state.finished_at_ms is not None
    assert state.is_solved()
    assert state.score.base_score == 150


def test_snapshots_are_detached_from_the_engine():
    game = dealt_game("snapshot")
    state = game.get_state()
    game.draw_from_stock()

    assert len(state.stock) == 24
    assert state.waste == ()
    assert isinstance(state.foundations, MappingProxyType)
    with pytest.raises(TypeError):
        state.foundations[Suit.HEARTS] = ()
    with pytest.raises(AttributeError):
        state.tableau.append(())
