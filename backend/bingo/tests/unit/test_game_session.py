"""GameSession operator actions, player lifecycle, cards, win declaration and reset."""

import pytest

from bingo.logic.enums import ErrorCode, MarkState
from bingo.logic.events import BroadcastTarget, EventType, PlayerTarget
from bingo.logic.exceptions import StateConflictError, ValidationError
from bingo.tests.helpers.session import TERMS, add_player, event_types, make_session

CARD = ["term-00", "term-01", "term-02", "term-03"]


@pytest.fixture
def game():
    return make_session()


class TestOperatorActions:
    def test_add_term_broadcasts_full_list(self, game):
        events = game.add_term("Paradigm shift")
        assert len(events) == 1
        assert events[0].target == BroadcastTarget()
        assert events[0].data.terms[-1] == "Paradigm shift"

    def test_remove_term_broadcasts_full_list(self, game):
        events = game.remove_term(0)
        assert events[0].data.terms == TERMS[1:]

    def test_announce_broadcasts_term_and_announced_list(self, game):
        game.announce("term-05")
        events = game.announce("term-06")
        assert event_types(events) == [EventType.TERM_ANNOUNCED]
        assert events[0].data.term == "term-06"
        assert events[0].data.announced_terms == ["term-05", "term-06"]

    def test_rejected_action_raises_before_any_event(self, game):
        with pytest.raises(ValidationError):
            game.add_term("")
        assert game.terms.terms == TERMS


class TestRegister:
    def test_register_emits_private_ack_count_and_leaderboard(self, game):
        events = game.register("p1", "  Alice  ")
        assert event_types(events) == [
            EventType.REGISTERED,
            EventType.PLAYER_COUNT,
            EventType.LEADERBOARD_UPDATED,
        ]
        assert events[0].target == PlayerTarget(player_id="p1")
        assert events[0].data.name == "Alice"
        assert events[1].data.count == 1
        assert game.get_player("p1").name == "Alice"

    def test_blank_name_rejected(self, game):
        with pytest.raises(ValidationError) as exc_info:
            game.register("p1", "   ")
        assert exc_info.value.code == ErrorCode.INVALID_NAME

    def test_second_registration_rejected(self, game):
        game.register("p1", "Alice")
        with pytest.raises(StateConflictError) as exc_info:
            game.register("p1", "Alice again")
        assert exc_info.value.code == ErrorCode.ALREADY_REGISTERED

    def test_duplicate_display_names_allowed(self, game):
        game.register("p1", "Alice")
        game.register("p2", "Alice")
        assert game.player_count == 2


class TestDisconnect:
    def test_disconnect_keeps_player_and_progress(self, game):
        add_player(game, "p1", "Alice", CARD)
        game.announce("term-00")
        game.mark("p1", "term-00")

        events = game.disconnect("p1")

        player = game.get_player("p1")
        assert player.connected is False
        assert player.valid_clicks == 1
        assert game.connected_count == 0
        assert event_types(events) == [EventType.PLAYER_COUNT, EventType.LEADERBOARD_UPDATED]
        assert game.leaderboard()[0].disconnected is True

    def test_unknown_player_disconnect_is_noop(self, game):
        assert game.disconnect("nobody") == []


class TestCards:
    def test_generate_card_draws_from_pool(self, game):
        game.register("p1", "Alice")
        events = game.generate_card("p1")
        card = game.get_player("p1").card
        assert len(card) == 4
        assert set(card) <= set(TERMS)
        assert events[0].data.card == card

    def test_generate_card_is_idempotent(self, game):
        game.register("p1", "Alice")
        first = game.generate_card("p1")[0].data.card
        second = game.generate_card("p1")[0].data.card
        assert first == second

    def test_generate_card_needs_enough_terms(self):
        game = make_session(terms=["a", "b"])
        game.register("p1", "Alice")
        with pytest.raises(ValidationError) as exc_info:
            game.generate_card("p1")
        assert exc_info.value.code == ErrorCode.NOT_ENOUGH_TERMS

    def test_submit_card_sets_card_once(self, game):
        game.register("p1", "Alice")
        events = game.submit_card("p1", CARD)
        assert event_types(events) == [EventType.CARD_ASSIGNED]
        assert game.submit_card("p1", CARD) == []
        with pytest.raises(StateConflictError) as exc_info:
            game.submit_card("p1", ["term-04", "term-05", "term-06", "term-07"])
        assert exc_info.value.code == ErrorCode.CARD_ALREADY_SET

    def test_submit_invalid_card_rejected(self, game):
        game.register("p1", "Alice")
        with pytest.raises(ValidationError):
            game.submit_card("p1", ["term-00", "term-01", "term-02", "bogus"])
        assert game.get_player("p1").card == []

    def test_card_actions_from_unknown_player_ignored(self, game):
        assert game.generate_card("ghost") == []
        assert game.submit_card("ghost", CARD) == []


class TestDeclareWin:
    def test_sixteen_term_card_with_five_announced(self):
        game = make_session(card_size=16)
        add_player(game, "p1", "Alice")
        card = game.get_player("p1").card
        for term in card[:5]:
            game.announce(term)
            game.mark("p1", term)
        game.mark("p1", card[10])

        with pytest.raises(StateConflictError) as exc_info:
            game.declare_win("p1")
        assert exc_info.value.code == ErrorCode.NOT_A_VALID_WIN
        assert exc_info.value.message == "Not a valid win"

        game.unmark("p1", card[10])
        events = game.declare_win("p1")
        assert event_types(events) == [EventType.WIN_CONFIRMED, EventType.LEADERBOARD_UPDATED]
        assert events[0].target == PlayerTarget(player_id="p1")
        assert events[0].data.position == 1
        assert events[0].data.player_name == "Alice"

    def test_invalid_declaration_changes_nothing(self, game):
        add_player(game, "p1", "Alice", CARD)
        with pytest.raises(StateConflictError):
            game.declare_win("p1")
        assert game.get_player("p1").has_bingo is False
        assert game.winners == []

    def test_positions_follow_processing_order(self, game):
        add_player(game, "p1", "Alice", CARD)
        add_player(game, "p2", "Bob", CARD)
        game.announce("term-00")
        game.mark("p1", "term-00")
        game.mark("p2", "term-00")

        game.declare_win("p2")
        game.declare_win("p1")

        assert [(w.player_id, w.position) for w in game.winners] == [("p2", 1), ("p1", 2)]
        assert game.get_player("p1").bingo_time is not None
        assert [e.id for e in game.leaderboard()] == ["p2", "p1"]

    def test_second_declaration_rejected(self, game):
        add_player(game, "p1", "Alice", CARD)
        game.announce("term-00")
        game.mark("p1", "term-00")
        game.declare_win("p1")
        with pytest.raises(StateConflictError) as exc_info:
            game.declare_win("p1")
        assert exc_info.value.code == ErrorCode.ALREADY_WON

    def test_winner_mark_state_is_frozen(self, game):
        add_player(game, "p1", "Alice", CARD)
        game.announce("term-00")
        game.mark("p1", "term-00")
        game.declare_win("p1")
        game.unannounce("term-00")
        assert game.get_player("p1").marks[0].state is MarkState.CONFIRMED


class TestReset:
    def test_reset_mid_game_keeps_identities(self, game):
        add_player(game, "p1", "Alice", CARD)
        add_player(game, "p2", "Bob", CARD)
        game.announce("term-00")
        game.mark("p1", "term-00")
        game.mark("p2", "term-00")
        game.mark("p2", "term-01")
        game.declare_win("p1")

        events = game.reset()

        assert event_types(events) == [EventType.SESSION_RESET, EventType.LEADERBOARD_UPDATED]
        assert game.terms.announced == []
        assert game.terms.terms == TERMS
        assert game.winners == []
        for player_id, name in [("p1", "Alice"), ("p2", "Bob")]:
            player = game.get_player(player_id)
            assert player.name == name
            assert (player.valid_clicks, player.total_clicks) == (0, 0)
            assert player.has_bingo is False
            assert player.bingo_position is None
            assert player.marks == {}
            assert player.card == []

    def test_win_positions_restart_after_reset(self, game):
        add_player(game, "p1", "Alice", CARD)
        game.announce("term-00")
        game.mark("p1", "term-00")
        game.declare_win("p1")
        game.reset()

        game.submit_card("p1", CARD)
        game.announce("term-01")
        game.mark("p1", "term-01")
        events = game.declare_win("p1")
        assert events[0].data.position == 1


class TestSnapshot:
    def test_snapshot_counts_connected_players_only(self, game):
        game.register("p1", "Alice")
        game.register("p2", "Bob")
        game.disconnect("p2")
        game.announce("term-03")

        view = game.snapshot()
        assert view.terms == TERMS
        assert view.announced_terms == ["term-03"]
        assert view.player_count == 1
