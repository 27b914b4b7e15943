"""
Game controller tests.

Each inbound operation is driven through ``asyncio.run`` against either a
freshly dealt game or a hand-built table.
"""

import pytest

from klondike.controller import GameController
from klondike.core import (
    ActionTag, Card, EventBus, EventType, GamePhase, GameSettings, Rank, Scoring, Suit, UnknownPileError,
)

from tests.helpers import EventRecorder, down, make_state, nearly_won_state, run, suit_run, up


def _controller_for(state, settings=None):
    event_bus = EventBus()
    recorder = EventRecorder(event_bus)
    controller = GameController(event_bus=event_bus, game_state=state, settings=settings)
    return controller, recorder


@pytest.mark.unit
@pytest.mark.fast
class TestLifecycle:

    def setup_method(self):
        self.event_bus = EventBus()
        self.recorder = EventRecorder(self.event_bus)
        self.controller = GameController(event_bus=self.event_bus)

    def test_not_started_until_initialized(self):
        assert self.controller.phase == GamePhase.NOT_STARTED
        assert run(self.controller.on_deck_interact()) is False
        assert run(self.controller.request_save()) is None

    def test_initialize(self):
        settings = GameSettings(difficulty=1, seed=3)
        assert run(self.controller.initialize(settings)) is True

        assert self.controller.phase == GamePhase.AWAITING_INPUT
        assert self.controller.settings == settings
        snapshot = self.controller.get_snapshot()
        assert len(snapshot.deck) == 52
        assert snapshot.total_cards() == 52

        event = self.recorder.of(EventType.GAME_INITIALIZED)[0]
        assert event['settings'] == settings
        assert event['deck'] == snapshot.deck

    def test_same_seed_same_deck(self):
        run(self.controller.initialize(GameSettings(seed=99)))
        first = self.controller.get_snapshot().deck.cards
        run(self.controller.initialize(GameSettings(seed=99)))
        assert self.controller.get_snapshot().deck.cards == first

    def test_deal_is_row_by_row(self):
        run(self.controller.initialize(GameSettings(), shuffle=False))
        self.recorder.clear()
        assert run(self.controller.on_deck_interact()) is True

        snapshot = self.controller.get_snapshot()
        assert [len(t) for t in snapshot.tableaux] == [1, 2, 3, 4, 5, 6, 7]
        assert len(snapshot.deck) == 24
        for tableau in self.controller.get_snapshot().tableaux:
            cards = tableau.decoded_cards()
            assert cards[-1].face_up
            assert not any(card.face_up for card in cards[:-1])

        # the unshuffled deck's top card lands on t1, the next on t2
        assert snapshot.tableaux[0].decoded_cards()[0] == Card(Rank.KING, Suit.DIAMONDS)
        assert snapshot.tableaux[1].decoded_cards()[0] == Card(Rank.QUEEN, Suit.SPADES)

        types = self.recorder.types()
        assert types[0] == EventType.DEALING
        assert types[-1] == EventType.DEALING_FINISHED
        moves = self.recorder.of(EventType.MOVE_CARDS)
        flips = self.recorder.of(EventType.FLIP_TOP_N_CARDS)
        assert len(moves) == 28 and len(flips) == 7
        assert all(e['action_tag'] == ActionTag.DEAL for e in moves + flips)
        assert [e['to_pile'].pile_id for e in moves[:8]] == [f"t{i}" for i in range(1, 8)] + ["t2"]
        assert self.controller.history_depth == 0

    def test_initialize_again_after_deal(self):
        run(self.controller.initialize(GameSettings(seed=1)))
        run(self.controller.on_deck_interact())
        run(self.controller.initialize(GameSettings(seed=2)))
        assert len(self.controller.get_snapshot().deck) == 52
        assert self.controller.history_depth == 0


@pytest.mark.unit
@pytest.mark.fast
class TestDeckInteraction:

    def test_hit_turns_difficulty_cards(self):
        controller, _ = _controller_for(make_state(deck=down("AC", "2C", "3C", "4C")))
        assert run(controller.on_deck_interact()) is True
        snapshot = controller.get_snapshot()
        assert len(snapshot.waste) == 3 and len(snapshot.deck) == 1
        assert controller.history_depth == 1

    def test_hit_takes_what_is_left(self):
        controller, _ = _controller_for(make_state(deck=down("AC", "2C")))
        run(controller.on_deck_interact())
        assert len(controller.get_snapshot().waste) == 2

    def test_draw_one(self):
        controller, _ = _controller_for(make_state(deck=down("AC", "2C")), GameSettings(difficulty=1))
        run(controller.on_deck_interact())
        assert len(controller.get_snapshot().waste) == 1

    def test_empty_deck_collects_waste(self):
        controller, recorder = _controller_for(make_state(waste=up("3C", "2C", "AC")))
        assert run(controller.on_deck_interact()) is True
        snapshot = controller.get_snapshot()
        assert len(snapshot.deck) == 3 and len(snapshot.waste) == 0
        assert snapshot.deck.passes == 1
        assert recorder.of(EventType.MOVE_CARDS)[0]['action_tag'] == ActionTag.COLLECT_WASTE

    def test_both_empty_does_nothing(self):
        controller, recorder = _controller_for(make_state())
        assert run(controller.on_deck_interact()) is False
        assert recorder.of(EventType.MOVE_CARDS) == []

    def test_pass_limit_reached(self):
        state = make_state(waste=up("3C", "2C"))
        state.deck.passes = 2
        controller, recorder = _controller_for(state, GameSettings(pass_limit=2))

        assert run(controller.on_deck_interact()) is False
        exhausted = recorder.of(EventType.STOCK_EXHAUSTED)
        assert exhausted and exhausted[0]['passes'] == 2 and exhausted[0]['pass_limit'] == 2
        assert len(controller.get_snapshot().waste) == 2

    def test_pass_limit_not_yet_reached(self):
        state = make_state(waste=up("3C", "2C"))
        state.deck.passes = 1
        controller, _ = _controller_for(state, GameSettings(pass_limit=2))
        assert run(controller.on_deck_interact()) is True
        assert controller.get_snapshot().deck.passes == 2


@pytest.mark.unit
@pytest.mark.fast
class TestDragAndDrop:

    def setup_method(self):
        self.state = make_state(
            tableaux={0: down("5C") + up("8H"), 1: up("9S"), 2: up("KD"), 3: down("4D") + up("7S", "6H")},
            waste=up("QD", "AS"),
            foundations={0: up("AH")},
        )
        self.controller, self.recorder = _controller_for(self.state)

    def test_legal_drop_moves_and_reveals(self):
        assert run(self.controller.on_drag_validate("t1", 1)) is True
        assert self.recorder.of(EventType.DRAG_VALIDATED)[0]['cards'] == (Card(8, Suit.HEARTS, True).encode(),)

        assert run(self.controller.on_drag_over_target("t2")) is True
        assert self.recorder.of(EventType.VALID_DRAG_OVER_PILE)

        assert run(self.controller.on_drop("t2")) is True
        assert [str(c) for c in self.state.tableaux[1]] == ["9S", "8H"]
        assert self.state.tableaux[0].top_card.face_up
        assert self.controller.drag is None
        assert self.controller.history_depth == 1

    def test_face_down_card_cannot_be_dragged(self):
        assert run(self.controller.on_drag_validate("t1", 0)) is False
        assert self.recorder.of(EventType.DRAG_REJECTED)
        assert self.controller.drag is None

    def test_only_waste_top_can_be_dragged(self):
        assert run(self.controller.on_drag_validate("waste", 0)) is False
        assert run(self.controller.on_drag_validate("waste", 1)) is True

    def test_illegal_drop_leaves_table_untouched(self):
        before = self.controller.get_snapshot()
        run(self.controller.on_drag_validate("t2", 0))
        assert run(self.controller.on_drag_over_target("t3")) is False
        assert self.recorder.of(EventType.INVALID_DRAG_OVER_PILE)

        assert run(self.controller.on_drop("t3")) is False
        assert self.recorder.of(EventType.INVALID_DROP_OVER_PILE)[0]['on_pile'].pile_id == "t3"
        assert self.controller.get_snapshot() == before
        assert self.controller.drag is None

    def test_drop_on_origin_is_illegal(self):
        run(self.controller.on_drag_validate("t1", 1))
        assert run(self.controller.on_drop("t1")) is False

    def test_run_drop(self):
        run(self.controller.on_drag_validate("t4", 1))
        assert self.controller.drag.cards == tuple(up("7S", "6H"))
        # only a king may open an empty tableau
        assert run(self.controller.on_drop("t5")) is False
        run(self.controller.on_drag_validate("t4", 2))
        assert run(self.controller.on_drop("t4")) is False

    def test_drop_without_drag(self):
        assert run(self.controller.on_drop("t2")) is False

    def test_cancel_drag(self):
        before = self.controller.get_snapshot()
        run(self.controller.on_drag_validate("waste", 1))
        self.controller.on_cancel_drag()
        assert self.controller.drag is None
        assert run(self.controller.on_drop("f2")) is False
        assert self.controller.get_snapshot() == before

    def test_waste_ace_to_empty_foundation(self):
        run(self.controller.on_drag_validate("waste", 1))
        assert run(self.controller.on_drop("f1")) is False
        run(self.controller.on_drag_validate("waste", 1))
        assert run(self.controller.on_drop("f2")) is True
        assert self.controller.foundation_suits[1] == Suit.SPADES

    def test_king_to_empty_tableau(self):
        run(self.controller.on_drag_validate("t3", 0))
        assert run(self.controller.on_drop("t6")) is True
        assert self.state.tableaux[2].is_empty

    def test_stale_drag_is_refused(self):
        run(self.controller.on_drag_validate("waste", 1))
        self.state.waste.remove_top_card()
        assert run(self.controller.on_drop("f2")) is False

    @pytest.mark.parametrize("pile_id", ["deck", "waste"])
    def test_deck_and_waste_never_take_a_drop(self, pile_id):
        before = self.controller.get_snapshot()
        run(self.controller.on_drag_validate("t2", 0))
        assert run(self.controller.on_drop(pile_id)) is False
        assert self.recorder.of(EventType.INVALID_DROP_OVER_PILE)[0]['on_pile'].pile_id == pile_id
        assert self.controller.get_snapshot() == before

    def test_unknown_drop_target_keeps_the_drag(self):
        run(self.controller.on_drag_validate("t1", 1))
        with pytest.raises(UnknownPileError):
            run(self.controller.on_drop("t9"))
        assert self.controller.drag is not None
        assert self.controller.phase == GamePhase.AWAITING_INPUT
        assert run(self.controller.on_drop("t2")) is True


@pytest.mark.unit
@pytest.mark.fast
class TestAutoCollect:

    def test_waste_ace_goes_to_lowest_empty_foundation(self):
        state = make_state(waste=up("AS"), foundations={0: up("AH")})
        controller, _ = _controller_for(state)
        assert run(controller.on_try_auto_collect("waste")) is True
        assert str(state.foundations[1].top_card) == "AS"

    def test_tableau_card_goes_to_its_suit(self):
        state = make_state(tableaux={4: down("9C") + up("2H")}, foundations={0: up("AS"), 2: up("AH")})
        controller, recorder = _controller_for(state)
        assert run(controller.on_try_auto_collect("t5")) is True
        assert str(state.foundations[2].top_card) == "2H"
        assert state.tableaux[4].top_card.face_up
        assert recorder.of(EventType.FLIP_TOP_N_CARDS)

    def test_nothing_fits(self):
        state = make_state(tableaux={0: up("5D")})
        controller, recorder = _controller_for(state)
        assert run(controller.on_try_auto_collect("t1")) is False
        assert recorder.of(EventType.REJECT_COLLECT_CARD)[0]['pile'].pile_id == "t1"

    @pytest.mark.parametrize("pile_id", ["deck", "f1", "t2"])
    def test_other_piles_rejected(self, pile_id):
        state = make_state(deck=down("AC"), foundations={0: up("AH")})
        controller, recorder = _controller_for(state)
        assert run(controller.on_try_auto_collect(pile_id)) is False
        assert recorder.of(EventType.REJECT_COLLECT_CARD)

    def test_certain_win_is_announced(self):
        state = nearly_won_state()
        state.waste.add_card(state.tableaux[0].remove_top_card())
        controller, recorder = _controller_for(state)
        assert not controller.check_certain_win()

        run(controller.on_try_auto_collect("waste"))
        assert controller.check_certain_win()
        assert recorder.of(EventType.FAST_FORWARD_POSSIBLE)


@pytest.mark.unit
@pytest.mark.fast
class TestFastForward:

    def test_finishes_a_certain_win(self):
        controller, recorder = _controller_for(nearly_won_state())
        assert run(controller.on_fast_forward()) is True

        assert controller.win_state
        assert controller.phase == GamePhase.WON
        ended = recorder.of(EventType.GAME_ENDED)
        assert len(ended) == 1 and ended[0]['won'] is True and ended[0]['score'] is None
        assert all(e['action_tag'] == ActionTag.AUTO_FINISH for e in recorder.of(EventType.MOVE_CARDS))

    def test_repeats_sweeps_until_nothing_moves(self):
        state = make_state(
            tableaux={0: up("QC"), 1: up("JC"), 2: up("KC")},
            foundations={0: suit_run(Suit.CLUBS, 10), 1: suit_run(Suit.HEARTS, 13),
                         2: suit_run(Suit.SPADES, 13), 3: suit_run(Suit.DIAMONDS, 13)},
        )
        controller, _ = _controller_for(state)
        assert run(controller.on_fast_forward()) is True
        assert controller.win_state
        assert controller.history_depth == 3

    def test_stops_when_stuck(self):
        state = make_state(tableaux={0: up("3C"), 1: down("2C")}, foundations={0: up("AC")})
        controller, _ = _controller_for(state)
        assert run(controller.on_fast_forward()) is False
        assert controller.phase == GamePhase.AWAITING_INPUT

    def test_won_game_refuses_moves(self):
        controller, _ = _controller_for(nearly_won_state())
        run(controller.on_fast_forward())
        assert run(controller.on_deck_interact()) is False
        assert run(controller.on_try_auto_collect("f1")) is False


@pytest.mark.unit
@pytest.mark.fast
class TestUndoRedo:

    def test_disabled_without_allow_undo(self):
        controller, _ = _controller_for(make_state(deck=down("AC", "2C", "3C")))
        run(controller.on_deck_interact())
        assert run(controller.undo()) is False
        assert run(controller.redo()) is False
        assert controller.history_depth == 1

    def test_undo_and_redo_a_hit(self):
        settings = GameSettings(allow_undo=True)
        controller, _ = _controller_for(make_state(deck=down("AC", "2C", "3C", "4C")), settings)
        before = controller.get_snapshot()
        run(controller.on_deck_interact())
        after = controller.get_snapshot()

        assert run(controller.undo()) is True
        assert controller.get_snapshot() == before
        assert controller.redo_depth == 1

        assert run(controller.redo()) is True
        assert controller.get_snapshot() == after
        assert run(controller.redo()) is False

    def test_new_move_clears_redo(self):
        settings = GameSettings(allow_undo=True, difficulty=1)
        controller, _ = _controller_for(make_state(deck=down("AC", "2C", "3C", "4C")), settings)
        run(controller.on_deck_interact())
        run(controller.undo())
        run(controller.on_deck_interact())
        assert controller.redo_depth == 0


@pytest.mark.unit
@pytest.mark.fast
class TestSaveLoad:

    def setup_method(self):
        self.event_bus = EventBus()
        self.recorder = EventRecorder(self.event_bus)
        self.controller = GameController(event_bus=self.event_bus)
        run(self.controller.initialize(GameSettings(difficulty=1, seed=21, allow_undo=True)))
        run(self.controller.on_deck_interact())
        run(self.controller.on_deck_interact())

    def test_request_save_emits_payload(self):
        payload = run(self.controller.request_save())
        assert payload['settings']['difficulty'] == 1
        assert self.recorder.of(EventType.GAME_SAVE_DATA)[0]['payload'] == payload

    def test_load_restores_table_and_settings(self):
        payload = run(self.controller.request_save())
        snapshot = self.controller.get_snapshot()

        other_bus = EventBus()
        other_recorder = EventRecorder(other_bus)
        other = GameController(event_bus=other_bus)
        assert run(other.load_save(payload)) is True

        assert other.get_snapshot() == snapshot
        assert other.settings == self.controller.settings
        assert other.phase == GamePhase.AWAITING_INPUT
        assert other.history_depth == 0
        loaded = other_recorder.of(EventType.GAME_DATA_LOADED)[0]
        assert loaded['deck'] == snapshot.deck
        assert loaded['tableaux'] == snapshot.tableaux
        types = other_recorder.types()
        assert types.index(EventType.GAME_DATA_LOADED) < types.index(EventType.GAME_LOAD_FINISHED)

    def test_failed_load_keeps_current_game(self):
        before = self.controller.get_snapshot()
        depth = self.controller.history_depth
        assert run(self.controller.load_save("{\"piles\": {}}")) is False
        assert run(self.controller.load_save({'piles': 'nope'})) is False
        assert self.controller.get_snapshot() == before
        assert self.controller.history_depth == depth
        assert self.recorder.of(EventType.GAME_DATA_LOADED) == []
        assert self.controller.phase == GamePhase.AWAITING_INPUT

    def test_load_resets_scoring(self):
        scoring = Scoring(self.event_bus)
        scoring.enabled, scoring.score = True, 50
        payload = run(self.controller.request_save())
        payload['settings']['scoringEnabled'] = True
        payload['settings']['allowUndo'] = False
        run(self.controller.load_save(payload))
        assert scoring.enabled and scoring.score == 0
