"""Tests for quick-knockout progression and medals."""

from __future__ import annotations

import unittest

from pickleroom.core.constants import (
    BRACKET_BRONZE,
    BRACKET_FINAL,
    BRACKET_SEMIFINAL,
    BRONZE,
    FORMAT_QUICK_KNOCKOUT,
    GAME_COMPLETED,
    GOLD,
    SILVER,
)
from tests.helpers import find_match, play, play_out, round_of, start_game


class QuickKnockoutTestCase(unittest.TestCase):
    """Round-by-round quick-knockout scenarios."""

    def test_five_teams_smart_seeding(self) -> None:
        """Test smart seeding with five teams through to medals."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 5)
        self.assertEqual(
            [m.letters() for m in round_of(matches, 1)], [{"A", "B"}, {"C", "D"}]
        )

        play(game, matches, find_match(matches, 1, {"A", "B"}), 11, 2)
        outcome = play(game, matches, find_match(matches, 1, {"C", "D"}), 11, 9)

        # A won by 9, C by 2: A goes straight to the final, C plays E
        self.assertTrue(outcome.round_advanced)
        self.assertEqual(game.seeded_finalist, "A")
        self.assertEqual(len(outcome.new_matches), 1)
        semifinal = outcome.new_matches[0]
        self.assertEqual(semifinal.letters(), {"C", "E"})
        self.assertEqual(semifinal.bracket_type, BRACKET_SEMIFINAL)

        outcome = play(game, matches, semifinal, 7, 11)
        third = round_of(matches, 3)
        self.assertEqual(len(third), 2)
        self.assertEqual(third[0].letters(), {"B", "D"})
        self.assertEqual(third[0].bracket_type, BRACKET_BRONZE)
        self.assertEqual(third[1].letters(), {"A", "E"})
        self.assertEqual(third[1].bracket_type, BRACKET_FINAL)

        play(game, matches, third[0], 8, 11)
        outcome = play(game, matches, third[1], 11, 6)

        self.assertTrue(outcome.tournament_completed)
        self.assertEqual(game.status, GAME_COMPLETED)
        self.assertEqual(game.medals[GOLD].team, "A")
        self.assertEqual(game.medals[SILVER].team, "E")
        self.assertEqual(game.medals[BRONZE].team, "D")
        self.assertEqual(game.medals[GOLD].players, ["uA1"])
        self.assertEqual(game.team("A").medal, GOLD)

    def test_margin_tie_keeps_first_match_winner(self) -> None:
        """Test that a margin tie seeds the first match's winner."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 5)
        play(game, matches, find_match(matches, 1, {"A", "B"}), 11, 6)
        outcome = play(game, matches, find_match(matches, 1, {"C", "D"}), 6, 11)

        self.assertEqual(game.seeded_finalist, "A")
        self.assertEqual(outcome.new_matches[0].letters(), {"D", "E"})

    def test_three_teams(self) -> None:
        """Test a three-team knockout with the bye in the semifinal."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 3)
        outcome = play(game, matches, matches[0], 11, 4)

        semifinal = outcome.new_matches[0]
        self.assertEqual(semifinal.letters(), {"A", "C"})
        self.assertEqual(game.seeded_finalist, "A")

        outcome = play(game, matches, semifinal, 9, 11)
        bronze, final = round_of(matches, 3)
        self.assertTrue(bronze.is_bye)
        self.assertEqual(bronze.team_a.letter, "B")
        self.assertEqual(final.letters(), {"A", "C"})
        self.assertFalse(outcome.tournament_completed)

        outcome = play(game, matches, final, 5, 11)
        self.assertTrue(outcome.tournament_completed)
        self.assertEqual(game.medals[GOLD].team, "C")
        self.assertEqual(game.medals[SILVER].team, "A")
        self.assertEqual(game.medals[BRONZE].team, "B")

    def test_four_teams_walkover_final(self) -> None:
        """Test a four-team knockout ending in walkovers."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 4)
        play(game, matches, find_match(matches, 1, {"A", "B"}), 11, 5)
        outcome = play(game, matches, find_match(matches, 1, {"C", "D"}), 11, 9)

        self.assertIsNone(game.seeded_finalist)
        self.assertEqual(outcome.new_matches[0].letters(), {"A", "C"})

        outcome = play(game, matches, outcome.new_matches[0], 11, 3)

        # one survivor per cohort: both round 3 matches are walkovers
        self.assertTrue(outcome.tournament_completed)
        self.assertEqual(len(outcome.new_matches), 2)
        self.assertTrue(all(m.is_bye for m in outcome.new_matches))
        self.assertEqual(game.current_round, 3)
        self.assertEqual(game.medals[GOLD].team, "A")
        self.assertIsNone(game.medals[SILVER].team)
        self.assertEqual(game.medals[BRONZE].team, "C")
        self.assertEqual(game.team("A").wins, 3)
        self.assertEqual(game.team("A").total_points, 6)

    def test_two_teams_complete_through_walkovers(self) -> None:
        """Test that a two-team knockout completes after one match."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 2)
        outcome = play(game, matches, matches[0], 11, 7)

        self.assertTrue(outcome.tournament_completed)
        self.assertEqual(game.current_round, 3)
        self.assertEqual(game.medals[GOLD].team, "A")
        self.assertIsNone(game.medals[SILVER].team)
        self.assertIsNone(game.medals[BRONZE].team)

    def test_six_teams(self) -> None:
        """Test six-team knockout pairing into round 3."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 6)
        for match in round_of(matches, 1):
            play(game, matches, match, 11, 5)

        second = round_of(matches, 2)
        self.assertEqual(second[0].letters(), {"A", "C"})
        self.assertTrue(second[1].is_bye)
        self.assertEqual(second[1].team_a.letter, "E")

        play(game, matches, second[0], 11, 8)
        bronze, final = round_of(matches, 3)
        self.assertTrue(bronze.is_bye)
        self.assertEqual(bronze.team_a.letter, "C")
        self.assertEqual(final.letters(), {"A", "E"})

    def test_seven_teams_fall_back_to_standard_pairing(self) -> None:
        """Test that seven teams are paired without seeding."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 7)
        for match in round_of(matches, 1):
            play(game, matches, match, 11, 5)

        self.assertIsNone(game.seeded_finalist)
        second = round_of(matches, 2)
        self.assertEqual([m.letters() for m in second], [{"A", "C"}, {"E", "G"}])

        play(game, matches, second[0], 11, 9)
        play(game, matches, second[1], 4, 11)
        bronze, final = round_of(matches, 3)
        self.assertEqual(bronze.letters(), {"C", "E"})
        self.assertEqual(final.letters(), {"A", "G"})

    def test_eight_teams(self) -> None:
        """Test an eight-team knockout through to medals."""
        game, matches = start_game(FORMAT_QUICK_KNOCKOUT, 8)
        for match in round_of(matches, 1):
            play(game, matches, match, 11, 5)
        for match in round_of(matches, 2):
            play(game, matches, match, 11, 5)

        bronze, final = round_of(matches, 3)
        self.assertEqual(bronze.letters(), {"C", "G"})
        self.assertEqual(final.letters(), {"A", "E"})

        play(game, matches, bronze, 11, 7)
        outcome = play(game, matches, final, 3, 11)
        self.assertTrue(outcome.tournament_completed)
        self.assertEqual(
            (game.medals[GOLD].team, game.medals[SILVER].team, game.medals[BRONZE].team),
            ("E", "A", "C"),
        )

    def test_every_field_size_completes_within_three_rounds(self) -> None:
        """Test that knockouts of 2 to 8 teams finish within the match bound."""
        for count in range(2, 9):
            with self.subTest(teams=count):
                game, matches = start_game(FORMAT_QUICK_KNOCKOUT, count)
                play_out(game, matches)

                self.assertEqual(game.status, GAME_COMPLETED)
                self.assertLessEqual(game.current_round, 3)
                self.assertLessEqual(len(matches), 3 * count / 2)
                self.assertIsNotNone(game.medals[GOLD].team)


if __name__ == "__main__":
    unittest.main()
