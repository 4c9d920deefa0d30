"""Round 1 match generation and walkover construction."""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Optional

from pickleroom.core.constants import (
    BRACKET_FINAL,
    BYE_LETTER,
    BYE_LOSER_SCORE,
    BYE_NAME,
    BYE_WINNER_SCORE,
    FORMAT_ONE_VS_ONE,
    FORMAT_ROUND_ROBIN,
    FORMAT_TWO_VS_TWO,
    MATCH_FINISHED,
)

from .models import MatchRecord, Player, Team
from .utils import describe_matches

logger = logging.getLogger(__name__)


def make_bye_team(source: Optional[Team] = None) -> Team:
    """Build the synthetic BYE opponent.

    The letter is always ``BYE``. When a source team is given its roster size
    is mirrored with placeholder players so the match renders like a real one.
    """
    players = []
    if source is not None:
        players = [Player(name=BYE_NAME) for _ in source.players]
    return Team(
        letter=BYE_LETTER,
        players=players,
        total_points=source.total_points if source is not None else 0,
    )


def make_bye_match(
    team: Team,
    round_number: int,
    match_number: int,
    bracket_type: Optional[str] = None,
) -> MatchRecord:
    """A walkover: already finished, 21-0, won by ``team``."""
    return MatchRecord(
        round_number=round_number,
        match_number=match_number,
        team_a=team,
        team_b=make_bye_team(team),
        score_a=BYE_WINNER_SCORE,
        score_b=BYE_LOSER_SCORE,
        winner="A",
        status=MATCH_FINISHED,
        bracket_type=bracket_type,
        is_bye=True,
    )


def schedule_round_robin(teams: list[Team]) -> list[tuple[Team, Team]]:
    """Order every pairing so teams rest between matches where possible.

    The first pair opens the schedule. Each following slot prefers pairs whose
    teams both sat out the previous match, and among those the pair with the
    fewest matches played so far. Ties keep generation order.
    """
    remaining = list(combinations(teams, 2))
    played = {team.letter: 0 for team in teams}
    schedule: list[tuple[Team, Team]] = []

    while remaining:
        if not schedule:
            chosen = remaining[0]
        else:
            last_a, last_b = schedule[-1]
            resting = {last_a.letter, last_b.letter}
            candidates = [
                pair
                for pair in remaining
                if pair[0].letter not in resting and pair[1].letter not in resting
            ]
            if not candidates:
                candidates = remaining
            chosen = min(
                candidates,
                key=lambda pair: played[pair[0].letter] + played[pair[1].letter],
            )

        schedule.append(chosen)
        played[chosen[0].letter] += 1
        played[chosen[1].letter] += 1
        remaining.remove(chosen)

    return schedule


def pair_sequentially(teams: list[Team]) -> list[tuple[Team, Team]]:
    """Pair (0,1), (2,3), ...; an odd trailing team is left out."""
    return [(teams[i], teams[i + 1]) for i in range(0, len(teams) - 1, 2)]


def generate_matches(
    teams: list[Team], game_type: str, round_number: int = 1
) -> list[MatchRecord]:
    """Generate the opening round for a format."""
    if game_type == FORMAT_ROUND_ROBIN:
        pairs = schedule_round_robin(teams)
        bracket_type = None
    elif game_type in (FORMAT_ONE_VS_ONE, FORMAT_TWO_VS_TWO):
        pairs = [(teams[0], teams[1])] if len(teams) == 2 else []
        bracket_type = BRACKET_FINAL
    else:
        # quick-knockout and pickle both open with sequential pairing
        pairs = pair_sequentially(teams)
        bracket_type = None

    matches = [
        MatchRecord(
            round_number=round_number,
            match_number=number,
            team_a=team_a,
            team_b=team_b,
            bracket_type=bracket_type,
        )
        for number, (team_a, team_b) in enumerate(pairs, start=1)
    ]
    logger.info("Generated %s round %d: %s", game_type, round_number, describe_matches(matches))
    return matches
