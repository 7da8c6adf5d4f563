"""Tests for game creation and seating."""

import pytest

from app.schemas.game import GameStatus, GameType
from app.services.game.engine import add_player, new_game, remove_player

from .conftest import ALICE, BOB, CAROL, make_game


class TestNewGame:
    def test_new_game_waits_for_players(self):
        game = new_game(GameType.NIM, 21)

        assert game.game_type == GameType.NIM
        assert game.players == []
        assert game.state.status == GameStatus.WAITING
        assert game.state.remaining_objects == 21
        assert game.state.moves == []
        assert game.state.winners == []

    def test_game_ids_are_unique(self):
        assert new_game(GameType.NIM, 5).game_id != new_game(GameType.NIM, 5).game_id

    def test_empty_pile_rejected(self):
        with pytest.raises(ValueError, match="at least one object"):
            new_game(GameType.NIM, 0)


class TestAddPlayer:
    def test_first_player_keeps_game_waiting(self):
        result = add_player(new_game(GameType.NIM, 21), ALICE)

        assert result.success
        assert result.game.players == [ALICE]
        assert result.game.state.player1 == ALICE
        assert result.game.state.status == GameStatus.WAITING

    def test_second_player_starts_game(self):
        game = add_player(new_game(GameType.NIM, 21), ALICE).game

        result = add_player(game, BOB)

        assert result.game.players == [ALICE, BOB]
        assert result.game.state.player2 == BOB
        assert result.game.state.status == GameStatus.IN_PROGRESS

    def test_rejoin_is_a_no_op(self):
        game = make_game()

        result = add_player(game, BOB)

        assert result.success
        assert result.game == game

    def test_third_player_rejected(self):
        result = add_player(make_game(), CAROL)

        assert not result.success
        assert result.error_code == "GAME_NOT_JOINABLE"


class TestRemovePlayer:
    def test_leaving_waiting_game_frees_seat(self):
        game = make_game(players=[ALICE], status=GameStatus.WAITING)

        result = remove_player(game, ALICE)

        assert result.success
        assert result.game.players == []
        assert result.game.state.player1 is None
        assert result.game.state.status == GameStatus.WAITING

    def test_leaving_started_game_keeps_state(self):
        game = make_game(remaining=12)

        result = remove_player(game, ALICE)

        assert result.success
        assert result.game == game

    def test_non_participant_cannot_leave(self):
        result = remove_player(make_game(), CAROL)

        assert result.error_code == "NOT_IN_GAME"
