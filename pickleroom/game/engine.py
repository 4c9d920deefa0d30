"""Pure tournament orchestration.

Nothing here touches Firestore. The service layer loads a game and its
matches, calls into this module, and persists whatever comes back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from pickleroom.core.constants import (
    GAME_COMPLETED,
    GAME_LIVE,
    GAME_PENDING,
    MATCH_FINISHED,
    MATCH_WIN_INDIVIDUAL_POINTS,
    MATCH_WIN_TEAM_POINTS,
)
from pickleroom.errors import ConflictError, NotFoundError

from .formats import get_format, validate_teams
from .generator import generate_matches
from .models import GameRecord, MatchRecord, MedalRecord, Player, ResultSubmission, Team
from .outcome import apply_medals, calculate_medals
from .points import PointDelta, compute_point_deltas
from .progression import plan_next_round

logger = logging.getLogger(__name__)


@dataclass
class MatchCredit:
    """Points owed to the players of a team that just won a match."""

    team_letter: str
    players: list[Player]
    individual_points: int = MATCH_WIN_INDIVIDUAL_POINTS


@dataclass
class SubmitOutcome:
    """Everything a result submission changed."""

    match: MatchRecord
    new_matches: list[MatchRecord] = field(default_factory=list)
    round_advanced: bool = False
    tournament_completed: bool = False
    credits: list[MatchCredit] = field(default_factory=list)

    @property
    def updated_matches(self) -> list[MatchRecord]:
        return [self.match] + self.new_matches


def start_tournament(teams: list[Team], game_type: str) -> list[MatchRecord]:
    """Validate teams for the format and generate round 1."""
    validate_teams(game_type, teams)
    return generate_matches(teams, game_type, round_number=1)


def credit_win(game: GameRecord, match: MatchRecord) -> Optional[MatchCredit]:
    """Bump the winning team's wins and points; byes count like any other win."""
    winner = match.winner_team
    team = game.team(winner.letter) if winner is not None else None
    if team is None:
        logger.warning(
            "Match %s of game %s has no creditable winner", match.id, game.id
        )
        return None
    team.wins += 1
    team.total_points += MATCH_WIN_TEAM_POINTS
    return MatchCredit(team_letter=team.letter, players=list(team.players))


def finalize_outcome(
    game: GameRecord, matches: list[MatchRecord]
) -> dict[str, MedalRecord]:
    """Mark the game completed and compute its medals."""
    medals = calculate_medals(game, matches)
    apply_medals(game, medals)
    game.status = GAME_COMPLETED
    return medals


def _advance(
    game: GameRecord, matches: list[MatchRecord], credits: list[MatchCredit]
) -> tuple[list[MatchRecord], bool]:
    """Generate rounds until one needs playing or the game is over.

    Returns the new matches and whether the game completed.
    """
    rule = get_format(game.type)
    new_matches: list[MatchRecord] = []

    while True:
        history = matches + new_matches
        current = [m for m in history if m.round_number == game.current_round]
        if any(not m.is_finished for m in current):
            return new_matches, False

        if game.current_round >= rule.max_rounds:
            plan_matches, champion = [], None
        else:
            plan = plan_next_round(game, game.current_round, history)
            plan_matches, champion = plan.matches, plan.champion
            if plan.seeded_finalist:
                game.seeded_finalist = plan.seeded_finalist

        if not plan_matches:
            game.champion_team = champion
            finalize_outcome(game, history)
            logger.info("Game %s completed after round %d", game.id, game.current_round)
            return new_matches, True

        game.current_round += 1
        for match in plan_matches:
            if match.is_bye:
                credit = credit_win(game, match)
                if credit is not None:
                    credits.append(credit)
        new_matches.extend(plan_matches)


def submit_result(
    game: GameRecord,
    matches: list[MatchRecord],
    match_id: str,
    score_a,
    score_b,
) -> SubmitOutcome:
    """Record a result, credit the winner, and advance the game if the round is done."""
    if game.status == GAME_COMPLETED:
        raise ConflictError("Game is already completed.")

    submission = ResultSubmission(match_id=match_id, score_a=score_a, score_b=score_b)
    submission.validate()

    match = next((m for m in matches if m.id == match_id), None)
    if match is None:
        raise NotFoundError("Match not found.")
    if match.is_finished:
        raise ConflictError("Match result has already been submitted.")
    if match.round_number != game.current_round:
        raise ConflictError("Match is not part of the current round.")

    match.score_a = submission.score_a
    match.score_b = submission.score_b
    match.winner = "A" if submission.score_a > submission.score_b else "B"
    match.status = MATCH_FINISHED
    if game.status == GAME_PENDING:
        game.status = GAME_LIVE

    outcome = SubmitOutcome(match=match)
    credit = credit_win(game, match)
    if credit is not None:
        outcome.credits.append(credit)

    starting_round = game.current_round
    outcome.new_matches, outcome.tournament_completed = _advance(
        game, matches, outcome.credits
    )
    outcome.round_advanced = game.current_round > starting_round
    return outcome


def distribute_points(game: GameRecord) -> list[PointDelta]:
    """Point deltas for a completed game, at most once per game."""
    if game.points_assigned:
        logger.info("Points for game %s were already assigned", game.id)
        return []
    if game.status != GAME_COMPLETED:
        raise ConflictError("Points can only be assigned once the game is completed.")
    deltas = compute_point_deltas(game)
    game.points_assigned = True
    return deltas
