import pytest

from klondike.deck import shuffled_deck
from klondike.game import GameOptions, GamePhase, GameSequenceError, KlondikeGame
from klondike.piles import STOCK, TableauRef, WASTE


class FakeClock:
    def __init__(self, now_ms: int = 1_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, seconds: int) -> None:
        self.now_ms += seconds * 1000


def dealt_game(seed: str = "deal", **options) -> KlondikeGame:
    game = KlondikeGame(seed, GameOptions(now=FakeClock(), **options))
    game.deal()
    return game


def test_deal_layout():
    game = dealt_game()
    state = game.get_state()

    assert [len(column) for column in state.tableau] == [1, 2, 3, 4, 5, 6, 7]
    for column in state.tableau:
        assert column[-1].face_up
        assert not any(card.face_up for card in column[:-1])
    assert len(state.stock) == 24
    assert not any(card.face_up for card in state.stock)
    assert state.waste == ()
    assert all(len(pile) == 0 for pile in state.foundations.values())
    assert state.score.total_score == 0
    assert state.move_count == 0
    assert state.last_move is None
    assert game.phase == GamePhase.DEALT


def test_deal_follows_shuffled_deck_order():
    deck = shuffled_deck("order")
    state = dealt_game("order").get_state()

    assert state.tableau[0][0].id == deck[0].id
    assert [card.id for card in state.tableau[1]] == [deck[1].id, deck[2].id]
    assert [card.id for card in state.stock] == [card.id for card in deck[28:]]


def test_same_seed_deals_same_board():
    first = dealt_game("replay").get_state()
    second = dealt_game("replay").get_state()
    assert first.tableau == second.tableau
    assert first.stock == second.stock


def test_deal_accounts_for_all_cards():
    cards = dealt_game().get_state().all_cards()
    assert len(cards) == 52
    assert len({card.id for card in cards}) == 52


def test_operations_before_deal_raise():
    game = KlondikeGame("early", GameOptions(now=FakeClock()))
    assert game.phase == GamePhase.UNSTARTED

    with pytest.raises(GameSequenceError):
        game.draw_from_stock()
    with pytest.raises(GameSequenceError):
        game.move_card(WASTE, TableauRef(0))
    with pytest.raises(GameSequenceError):
        game.get_state()
    with pytest.raises(GameSequenceError):
        game.finish()
    with pytest.raises(GameSequenceError):
        game.can_auto_move_to_foundation()


def test_deal_again_resets_everything():
    game = dealt_game("again")
    game.draw_from_stock()
    game.draw_from_stock()
    assert game.get_state().move_count == 2

    state = game.deal()
    assert state.move_count == 0
    assert state.waste == ()
    assert len(state.stock) == 24
    assert state.last_move is None
    assert state.score.base_score == 0


def test_deal_after_finish_starts_a_new_run():
    game = dealt_game("restart")
    game.finish()
    state = game.deal()
    assert game.phase == GamePhase.DEALT
    assert state.finished_at_ms is None


def test_clock_at_zero_is_a_valid_start():
    game = KlondikeGame("zero", GameOptions(now=FakeClock(0)))
    state = game.deal()
    assert state.started_at_ms == 0
    game.draw_from_stock()
    assert game.get_state().move_count == 1


def test_invalid_options_rejected():
    with pytest.raises(ValueError):
        GameOptions(turn_count=2)
    with pytest.raises(ValueError):
        GameOptions(match_duration_seconds=0)


def test_draw_one_turns_single_card():
    game = dealt_game("draw-one", turn_count=1)
    before = game.get_state()
    state = game.draw_from_stock()

    assert len(state.stock) == 23
    assert len(state.waste) == 1
    assert state.waste[0].face_up
    assert state.waste[0].id == before.stock[-1].id
    assert state.last_move.from_ref == STOCK
    assert state.last_move.to_ref == WASTE
    assert state.last_move.moved_card_ids == (before.stock[-1].id,)


def test_draw_three_turns_three_cards_top_last():
    game = dealt_game("draw-three")
    before = game.get_state()
    state = game.draw_from_stock()

    assert len(state.waste) == 3
    assert [card.id for card in state.waste] == [card.id for card in reversed(before.stock[-3:])]
    assert state.move_count == 1
