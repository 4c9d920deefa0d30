"""Builders shared by the engine tests."""

from __future__ import annotations

from typing import Optional

from pickleroom.core.constants import GAME_COMPLETED, GAME_LIVE, MATCH_FINISHED, TEAM_LETTERS
from pickleroom.game import engine
from pickleroom.game.models import GameRecord, MatchRecord, Player, Team


def make_team(letter: str, roster: int = 1) -> Team:
    players = [
        Player(name=f"Player {letter}{i}", user_id=f"u{letter}{i}")
        for i in range(1, roster + 1)
    ]
    return Team(letter=letter, players=players)


def make_teams(count: int, roster: int = 1) -> list[Team]:
    return [make_team(letter, roster) for letter in TEAM_LETTERS[:count]]


def assign_ids(game: GameRecord, matches: list[MatchRecord]) -> None:
    for match in matches:
        if match.id is None:
            match.id = f"m{len(game.match_ids) + 1}"
            match.game_id = game.id
            game.match_ids.append(match.id)


def start_game(
    game_type: str, count: int, roster: int = 1
) -> tuple[GameRecord, list[MatchRecord]]:
    teams = make_teams(count, roster)
    matches = engine.start_tournament(teams, game_type)
    game = GameRecord(type=game_type, teams=teams, id="game1", status=GAME_LIVE)
    assign_ids(game, matches)
    return game, matches


def play(
    game: GameRecord,
    matches: list[MatchRecord],
    match: MatchRecord,
    score_a: int,
    score_b: int,
) -> engine.SubmitOutcome:
    """Submit a result and fold any new matches back into the history."""
    outcome = engine.submit_result(game, matches, match.id, score_a, score_b)
    assign_ids(game, outcome.new_matches)
    matches.extend(outcome.new_matches)
    return outcome


def find_match(
    matches: list[MatchRecord],
    round_number: int,
    letters: set[str],
    bracket_type: Optional[str] = None,
) -> MatchRecord:
    for match in matches:
        if match.round_number != round_number or match.letters() != letters:
            continue
        if bracket_type is None or match.bracket_type == bracket_type:
            return match
    raise AssertionError(f"No round {round_number} match for {sorted(letters)}")


def round_of(matches: list[MatchRecord], round_number: int) -> list[MatchRecord]:
    return sorted(
        (m for m in matches if m.round_number == round_number),
        key=lambda m: m.match_number,
    )


def play_out(game: GameRecord, matches: list[MatchRecord]) -> None:
    """Play every open match, team A winning by varied margins, to the end."""
    for _ in range(10):
        if game.status == GAME_COMPLETED:
            return
        current = round_of(matches, game.current_round)
        open_matches = [m for m in current if m.status != MATCH_FINISHED]
        if not open_matches:
            raise AssertionError(f"Round {game.current_round} has no open match")
        for match in open_matches:
            play(game, matches, match, 11, (match.match_number * 3) % 10)
    raise AssertionError("Game did not complete")
