"""Tests for move validation.

Critical scenarios tested:
- Game status validation (WAITING, OVER)
- Turn validation derived from move history
- Object count bounds and pile size
- Check order when several rules are broken at once
- Non-integer counts (bool, float, string, null)
"""

import pytest

from app.schemas.game import GameMove, GameStatus
from app.services.game.engine import player_to_move, validate_move

from .conftest import ALICE, BOB, make_game, make_move


class TestGameStatusValidation:
    """Only a game in progress accepts moves."""

    def test_cannot_move_in_waiting_game(self):
        game = make_game(players=[ALICE], status=GameStatus.WAITING)

        result = validate_move(game, make_move(ALICE, 1))

        assert not result.is_valid
        assert result.error_code == "GAME_NOT_ACTIVE"
        assert result.error_message == "game not active"

    def test_cannot_move_in_finished_game(self):
        game = make_game(remaining=0, status=GameStatus.OVER)

        result = validate_move(game, make_move(ALICE, 1))

        assert not result.is_valid
        assert result.error_code == "GAME_NOT_ACTIVE"


class TestTurnValidation:
    def test_first_player_moves_first(self):
        game = make_game()

        assert player_to_move(game) == ALICE
        assert validate_move(game, make_move(ALICE, 2)).is_valid

    def test_second_player_cannot_move_first(self):
        """Bob moving on an empty history should be rejected."""
        result = validate_move(make_game(), make_move(BOB, 1))

        assert not result.is_valid
        assert result.error_code == "NOT_YOUR_TURN"
        assert result.error_message == "not your turn"

    def test_turn_alternates_with_history(self):
        game = make_game(remaining=18, moves=[make_move(ALICE, 3)])

        assert player_to_move(game) == BOB
        assert validate_move(game, make_move(BOB, 1)).is_valid
        assert validate_move(game, make_move(ALICE, 1)).error_code == "NOT_YOUR_TURN"

    def test_non_participant_is_never_on_turn(self):
        result = validate_move(make_game(), make_move("mallory", 1))

        assert result.error_code == "NOT_YOUR_TURN"


class TestMoveCountValidation:
    def test_zero_objects_rejected(self):
        result = validate_move(make_game(), make_move(ALICE, 0))

        assert result.error_code == "INVALID_MOVE_COUNT"
        assert result.error_message == "invalid move count"

    def test_more_than_three_rejected(self):
        result = validate_move(make_game(), make_move(ALICE, 4))

        assert result.error_code == "INVALID_MOVE_COUNT"

    def test_negative_count_rejected(self):
        result = validate_move(make_game(), make_move(ALICE, -1))

        assert result.error_code == "INVALID_MOVE_COUNT"

    def test_bounds_are_inclusive(self):
        game = make_game()

        for count in (1, 2, 3):
            assert validate_move(game, make_move(ALICE, count)).is_valid

    def test_cannot_take_more_than_remaining(self):
        """Taking 3 from a pile of 2 should fail even though 3 is in range."""
        result = validate_move(make_game(remaining=2), make_move(ALICE, 3))

        assert result.error_code == "INSUFFICIENT_OBJECTS"
        assert result.error_message == "insufficient objects"

    def test_can_take_exactly_remaining(self):
        assert validate_move(make_game(remaining=2), make_move(ALICE, 2)).is_valid


class TestCheckOrder:
    """The first failing rule determines the error."""

    def test_status_checked_before_turn(self):
        game = make_game(remaining=0, status=GameStatus.OVER)

        assert validate_move(game, make_move(BOB, 7)).error_code == "GAME_NOT_ACTIVE"

    def test_turn_checked_before_count(self):
        assert validate_move(make_game(), make_move(BOB, 7)).error_code == "NOT_YOUR_TURN"

    def test_count_checked_before_pile(self):
        result = validate_move(make_game(remaining=1), make_move(ALICE, 5))

        assert result.error_code == "INVALID_MOVE_COUNT"


class TestNonIntegerCounts:
    """Counts must be real integers; nothing is coerced."""

    @pytest.mark.parametrize("count", [True, False, 1.5, 2.0, "2", None, [1]])
    def test_non_integer_count_rejected(self, count):
        result = validate_move(make_game(), make_move(ALICE, count))

        assert not result.is_valid
        assert result.error_code == "INVALID_MOVE_COUNT"
        assert result.error_message == "invalid move count"

    def test_boolean_from_json_is_not_a_count(self):
        """A JSON true must not be read as taking one object."""
        move = GameMove.model_validate_json(
            '{"playerID": "alice", "gameID": "game-1", "move": {"numObjects": true}}'
        )

        assert move.move.num_objects is True
        assert validate_move(make_game(), move).error_code == "INVALID_MOVE_COUNT"
