"""Tests for GameService using mockfirestore."""

from __future__ import annotations

import datetime
import unittest
from unittest.mock import MagicMock, patch

from mockfirestore import MockFirestore

from pickleroom.core.constants import (
    FORMAT_ONE_VS_ONE,
    FORMAT_QUICK_KNOCKOUT,
    FORMAT_ROUND_ROBIN,
    GAME_COMPLETED,
    GAME_LIVE,
    MATCH_FINISHED,
    MATCH_LIVE,
)
from pickleroom.errors import ConflictError, NotFoundError, ValidationError
from pickleroom.game.ledger import CreditReport
from pickleroom.game.models import ResultSubmission
from pickleroom.game.services import GameService
from tests.mock_utils import MockBatch, MockTransaction, patch_mockfirestore


def _teams_payload(count: int, roster: int = 1) -> list[dict]:
    return [
        {
            "letter": letter,
            "players": [
                {"userId": f"u{letter}{i}", "name": f"Player {letter}{i}"}
                for i in range(1, roster + 1)
            ],
        }
        for letter in "ABCDEFGH"[:count]
    ]


class GameServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        patch_mockfirestore()
        self.db = MockFirestore()
        self.db.batch = MagicMock(side_effect=lambda: MockBatch(self.db))
        self.transaction = MockTransaction()
        self.db.transaction = MagicMock(return_value=self.transaction)

        patchers = {
            "transactional": patch(
                "pickleroom.game.services.firestore.transactional",
                side_effect=lambda func: func,
            ),
            "credit_match_wins": patch(
                "pickleroom.game.services.PlayerLedger.credit_match_wins",
                return_value=CreditReport(),
            ),
            "apply_deltas": patch(
                "pickleroom.game.services.PlayerLedger.apply_deltas",
                return_value=CreditReport(credited=["user:uA1"]),
            ),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

    def tearDown(self) -> None:
        self.db.reset()

    def _create(self, game_type: str, count: int, room_id: str = "room1") -> dict:
        return GameService.create_game(
            self.db,
            {"roomId": room_id, "gameType": game_type, "teams": _teams_payload(count)},
            "creator",
        )

    def _game_doc(self, game_id: str) -> dict:
        return self.db.collection("games").document(game_id).get().to_dict()

    def test_create_game_stores_game_and_matches(self) -> None:
        """Test that creating a game stores it and its matches."""
        game = self._create(FORMAT_ROUND_ROBIN, 3)

        stored = self._game_doc(game["id"])
        self.assertEqual(stored["status"], GAME_LIVE)
        self.assertEqual(stored["roomId"], "room1")
        self.assertEqual(stored["createdBy"], "creator")
        self.assertEqual(stored["currentRound"], 1)
        self.assertEqual(stored["participantIds"], ["uA1", "uB1", "uC1"])
        self.assertEqual(len(stored["matchIds"]), 3)
        self.assertEqual(len(game["matches"]), 3)

        for match_id in stored["matchIds"]:
            match = self.db.collection("matches").document(match_id).get().to_dict()
            self.assertEqual(match["gameId"], game["id"])
            self.assertEqual(match["status"], "pending")

    def test_one_active_game_per_room(self) -> None:
        """Test that a room holds one active game at a time."""
        self._create(FORMAT_ROUND_ROBIN, 3)
        with self.assertRaises(ConflictError):
            self._create(FORMAT_ROUND_ROBIN, 3)
        # another room is fine
        self._create(FORMAT_ROUND_ROBIN, 3, room_id="room2")

    def test_invalid_game_writes_nothing(self) -> None:
        """Test that invalid input leaves Firestore untouched."""
        with self.assertRaises(ValidationError):
            self._create(FORMAT_ONE_VS_ONE, 3)
        with self.assertRaises(ValidationError):
            GameService.create_game(self.db, {"roomId": "room1"}, "creator")
        self.assertEqual(list(self.db.collection("games").stream()), [])

    def test_submit_in_transaction_advances_round(self) -> None:
        """Test the transactional submit across a round transition."""
        game = self._create(FORMAT_QUICK_KNOCKOUT, 4)
        first_id, second_id = self._game_doc(game["id"])["matchIds"]

        def submit(match_id: str, a: int, b: int):
            ref = self.db.collection("matches").document(match_id)
            return GameService._submit_in_transaction(
                self.transaction, self.db, ref, ResultSubmission(match_id, a, b)
            )

        _, _, outcome = submit(first_id, 11, 4)
        self.assertFalse(outcome.round_advanced)
        match = self.db.collection("matches").document(first_id).get().to_dict()
        self.assertEqual(match["status"], MATCH_FINISHED)
        self.assertEqual(match["winner"], "A")
        self.assertEqual(self._game_doc(game["id"])["teams"][0]["wins"], 1)

        _, _, outcome = submit(second_id, 3, 11)
        self.assertTrue(outcome.round_advanced)
        stored = self._game_doc(game["id"])
        self.assertEqual(stored["currentRound"], 2)
        self.assertEqual(len(stored["matchIds"]), 3)
        semifinal = (
            self.db.collection("matches").document(stored["matchIds"][2]).get().to_dict()
        )
        self.assertEqual(semifinal["bracketType"], "semifinal")
        self.assertEqual(
            {semifinal["teamA"]["letter"], semifinal["teamB"]["letter"]}, {"A", "D"}
        )
        self.assertEqual(semifinal["gameId"], game["id"])
        # the untouched room and creator fields survive the update
        self.assertEqual(stored["roomId"], "room1")

    def test_submit_result_completes_and_assigns_points(self) -> None:
        """Test that the last result completes the game and assigns points."""
        game = self._create(FORMAT_ONE_VS_ONE, 2)
        match_id = game["matches"][0]["id"]

        result = GameService.submit_result(self.db, match_id, 7, 11)

        self.assertTrue(result["tournamentCompleted"])
        self.assertEqual(result["game"]["medals"]["gold"]["team"], "B")
        self.assertFalse(result["points"]["alreadyAssigned"])
        stored = self._game_doc(game["id"])
        self.assertEqual(stored["status"], GAME_COMPLETED)
        self.assertTrue(stored["pointsAssigned"])
        self.assertIn("completedAt", stored)
        self.mocks["credit_match_wins"].assert_called_once()
        credits = self.mocks["credit_match_wins"].call_args[0][1]
        self.assertEqual([c.team_letter for c in credits], ["B"])
        self.mocks["apply_deltas"].assert_called_once()

        with self.assertRaises(ConflictError):
            GameService.submit_result(self.db, match_id, 11, 2)

    def test_submit_result_validates_before_reading(self) -> None:
        """Test that bad scores fail before a transaction starts."""
        with self.assertRaises(ValidationError):
            GameService.submit_result(self.db, "any", 11, 11)
        self.db.transaction.assert_not_called()

    def test_submit_result_unknown_match(self) -> None:
        """Test submitting a result for a missing match."""
        with self.assertRaises(NotFoundError):
            GameService.submit_result(self.db, "missing", 11, 2)

    def test_assign_points_only_once(self) -> None:
        """Test that points are assigned once per game."""
        game = self._create(FORMAT_ONE_VS_ONE, 2)
        GameService.submit_result(self.db, game["matches"][0]["id"], 11, 2)

        again = GameService.assign_points(self.db, game["id"])
        self.assertTrue(again["alreadyAssigned"])
        self.mocks["apply_deltas"].assert_called_once()

    def test_calculate_winners(self) -> None:
        """Test medal calculation once every match is finished."""
        game = self._create(FORMAT_ROUND_ROBIN, 3)
        with self.assertRaises(ConflictError):
            GameService.calculate_winners(self.db, game["id"])

        for match in game["matches"]:
            GameService.submit_result(self.db, match["id"], 11, 5)

        medals = GameService.calculate_winners(self.db, game["id"])
        self.assertEqual(medals["gold"], {"team": "A", "players": ["uA1"]})
        self.assertEqual(medals["silver"]["team"], "B")
        self.assertEqual(medals["bronze"]["team"], "C")

    def test_start_match(self) -> None:
        """Test marking a match live."""
        game = self._create(FORMAT_ONE_VS_ONE, 2)
        match_id = game["matches"][0]["id"]

        match = GameService.start_match(self.db, match_id)
        self.assertEqual(match["status"], MATCH_LIVE)
        stored = self.db.collection("matches").document(match_id).get().to_dict()
        self.assertEqual(stored["status"], MATCH_LIVE)

        GameService.submit_result(self.db, match_id, 11, 2)
        with self.assertRaises(ConflictError):
            GameService.start_match(self.db, match_id)
        with self.assertRaises(NotFoundError):
            GameService.start_match(self.db, "missing")

    def test_active_game_for_room(self) -> None:
        """Test fetching a room's active game."""
        self.assertIsNone(GameService.get_active_game_for_room(self.db, "room1"))
        game = self._create(FORMAT_ROUND_ROBIN, 3)
        active = GameService.get_active_game_for_room(self.db, "room1")
        self.assertEqual(active["id"], game["id"])
        self.assertEqual(len(active["matches"]), 3)

    def test_get_game_not_found(self) -> None:
        """Test fetching a missing game."""
        with self.assertRaises(NotFoundError):
            GameService.get_game(self.db, "missing")

    def test_user_recent_games(self) -> None:
        """Test the recent completed games for a user."""
        games = self.db.collection("games")
        teams = _teams_payload(2)
        teams[0]["totalPoints"] = 6
        base = {
            "type": FORMAT_ONE_VS_ONE,
            "roomId": "room1",
            "teams": teams,
            "participantIds": ["uA1", "uB1"],
            "medals": {"gold": {"team": "A", "players": ["uA1"]}},
        }
        games.document("old").set(
            {**base, "status": GAME_COMPLETED, "createdAt": datetime.datetime(2024, 1, 1)}
        )
        games.document("new").set(
            {**base, "status": GAME_COMPLETED, "createdAt": datetime.datetime(2024, 3, 1)}
        )
        games.document("live").set(
            {**base, "status": GAME_LIVE, "createdAt": datetime.datetime(2024, 4, 1)}
        )
        games.document("other").set(
            {
                **base,
                "participantIds": ["someone"],
                "teams": [],
                "status": GAME_COMPLETED,
                "createdAt": datetime.datetime(2024, 5, 1),
            }
        )

        recent = GameService.get_user_recent_games(self.db, "uA1")

        self.assertEqual([g["id"] for g in recent], ["new", "old"])
        self.assertEqual(recent[0]["winner"], "Team A")
        self.assertEqual(recent[0]["userTeam"], "A")
        self.assertEqual(recent[0]["points"], 6)
        self.assertEqual(recent[0]["gameType"], "1 vs 1")
        self.assertEqual(len(GameService.get_user_recent_games(self.db, "uA1", 1)), 1)


if __name__ == "__main__":
    unittest.main()
