"""Next-round generation for the multi-round formats.

Rules are looked up in ``NEXT_ROUND_RULES`` by ``(format, completed_round)``.
A missing entry means the format has nothing left to play and the game is
complete. Every rule returns a ``RoundPlan``; an empty plan also completes the
game, optionally naming the last champion that could be resolved.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional

from pickleroom.core.constants import (
    BRACKET_BRONZE,
    BRACKET_FINAL,
    BRACKET_LOSERS,
    BRACKET_SEMIFINAL,
    BRACKET_WINNERS,
    FORMAT_PICKLE,
    FORMAT_QUICK_KNOCKOUT,
)

from .generator import make_bye_match
from .models import GameRecord, MatchRecord, Team
from .utils import describe_matches

logger = logging.getLogger(__name__)


@dataclass
class RoundPlan:
    """What the engine should do once a round has finished."""

    matches: list[MatchRecord] = field(default_factory=list)
    seeded_finalist: Optional[str] = None
    champion: Optional[str] = None


@dataclass
class RoundContext:
    """A finished round together with the game history it belongs to."""

    game: GameRecord
    completed_round: int
    all_matches: list[MatchRecord]

    @property
    def next_round(self) -> int:
        return self.completed_round + 1

    def finished(self, round_number: int) -> list[MatchRecord]:
        matches = [
            m
            for m in self.all_matches
            if m.round_number == round_number and m.is_finished
        ]
        return sorted(matches, key=lambda m: m.match_number)

    def sat_out(self, round_number: int) -> list[Team]:
        """Game teams that did not appear in any match of the round."""
        played: set[str] = set()
        for match in self.all_matches:
            if match.round_number == round_number:
                played |= match.letters()
        return [team for team in self.game.teams if team.letter not in played]

    def resolve(self, team: Team) -> Team:
        """Swap a match snapshot for the game's live copy of the team."""
        return self.game.team(team.letter) or team


class _RoundBuilder:
    """Numbers matches of one round as they are added."""

    def __init__(self, round_number: int) -> None:
        self.round_number = round_number
        self.matches: list[MatchRecord] = []

    def _next_number(self) -> int:
        return len(self.matches) + 1

    def add(self, team_a: Team, team_b: Team, bracket_type: str) -> None:
        self.matches.append(
            MatchRecord(
                round_number=self.round_number,
                match_number=self._next_number(),
                team_a=team_a,
                team_b=team_b,
                bracket_type=bracket_type,
            )
        )

    def walkover(self, team: Team, bracket_type: str) -> None:
        self.matches.append(
            make_bye_match(team, self.round_number, self._next_number(), bracket_type)
        )

    def pair_off(self, teams: list[Team], bracket_type: str) -> None:
        """Pair teams in order; a lone leftover gets a walkover."""
        for i in range(0, len(teams), 2):
            if i + 1 < len(teams):
                self.add(teams[i], teams[i + 1], bracket_type)
            else:
                self.walkover(teams[i], bracket_type)


def _unique(teams: Iterable[Team]) -> list[Team]:
    seen: set[str] = set()
    result = []
    for team in teams:
        if team.letter not in seen:
            seen.add(team.letter)
            result.append(team)
    return result


def _split_results(ctx: RoundContext, round_number: int) -> tuple[list[Team], list[Team]]:
    """Winners and losers of a round; a walkover credits its real team as a winner."""
    winners: list[Team] = []
    losers: list[Team] = []
    for match in ctx.finished(round_number):
        if match.is_bye:
            if not match.team_a.is_bye:
                winners.append(ctx.resolve(match.team_a))
            continue
        winner, loser = match.winner_team, match.loser_team
        if winner is not None and not winner.is_bye:
            winners.append(ctx.resolve(winner))
        if loser is not None and not loser.is_bye:
            losers.append(ctx.resolve(loser))
    return winners, losers


# --- pickle ---------------------------------------------------------------


def pickle_round_two(ctx: RoundContext) -> RoundPlan:
    """Split round 1 into a winners bracket and a losers bracket."""
    winners, losers = _split_results(ctx, 1)
    byes = ctx.sat_out(1)
    builder = _RoundBuilder(ctx.next_round)

    remaining = winners
    if byes:
        paired = 0
        for bye_team in byes:
            if paired < len(winners):
                builder.add(winners[paired], bye_team, BRACKET_WINNERS)
                paired += 1
            else:
                builder.walkover(bye_team, BRACKET_WINNERS)
        remaining = winners[paired:]
    builder.pair_off(remaining, BRACKET_WINNERS)
    builder.pair_off(losers, BRACKET_LOSERS)

    logger.info(
        "Pickle round 2: winners=%s losers=%s byes=%s",
        [t.letter for t in winners],
        [t.letter for t in losers],
        [t.letter for t in byes],
    )
    return RoundPlan(builder.matches)


def bracket_champion(
    ctx: RoundContext, round_number: int, bracket_type: str
) -> Optional[Team]:
    """Survivor of one bracket, or None if it produced no real match.

    A walkover survivor takes precedence over the winner of the last real match.
    """
    matches = [m for m in ctx.finished(round_number) if m.bracket_type == bracket_type]
    real = [m for m in matches if not m.is_bye]
    if not real:
        return None

    champion = real[-1].winner_team
    walkovers = [m for m in matches if m.is_bye]
    if walkovers:
        champion = walkovers[0].team_a
    return ctx.resolve(champion) if champion is not None else None


def pickle_final(ctx: RoundContext) -> RoundPlan:
    """Winners-bracket champion meets losers-bracket champion."""
    winners_champion = bracket_champion(ctx, 2, BRACKET_WINNERS)
    losers_champion = bracket_champion(ctx, 2, BRACKET_LOSERS)

    if winners_champion is None or losers_champion is None:
        champion = winners_champion or losers_champion
        logger.warning(
            "Pickle game %s cannot form a final; completing early with champion %s",
            ctx.game.id,
            champion.letter if champion else None,
        )
        return RoundPlan(champion=champion.letter if champion else None)

    builder = _RoundBuilder(ctx.next_round)
    builder.add(winners_champion, losers_champion, BRACKET_FINAL)
    return RoundPlan(builder.matches)


# --- quick knockout ----------------------------------------------------------


def knockout_semifinals(ctx: RoundContext) -> RoundPlan:
    """Round 2 of quick knockout, with smart seeding when a team sat out.

    With one bye team and two real matches, the winner with the biggest
    margin goes straight to the final and the other winner plays the bye team.
    With a single real match (three teams) its winner plays the bye team and
    is kept as a finalist.
    """
    results = [m for m in ctx.finished(1) if not m.is_bye]
    byes = ctx.sat_out(1)
    builder = _RoundBuilder(ctx.next_round)

    # exactly two: with three results a seeded winner would leave an odd
    # semifinal, so larger fields use standard pairing below
    if byes and len(results) == 2:
        ranked = sorted(results, key=lambda m: m.margin, reverse=True)
        dominant = ctx.resolve(ranked[0].winner_team)
        close = ctx.resolve(ranked[1].winner_team)
        builder.add(close, byes[0], BRACKET_SEMIFINAL)
        logger.info(
            "Smart seeding: %s (margin %d) to the final, %s (margin %d) plays %s",
            dominant.letter,
            ranked[0].margin,
            close.letter,
            ranked[1].margin,
            byes[0].letter,
        )
        return RoundPlan(builder.matches, seeded_finalist=dominant.letter)

    if byes and len(results) == 1:
        winner = ctx.resolve(results[0].winner_team)
        builder.add(winner, byes[0], BRACKET_SEMIFINAL)
        return RoundPlan(builder.matches, seeded_finalist=winner.letter)

    winners, _ = _split_results(ctx, 1)
    builder.pair_off(_unique(winners + byes), BRACKET_SEMIFINAL)
    return RoundPlan(builder.matches)


def knockout_finals(ctx: RoundContext) -> RoundPlan:
    """Round 3 of quick knockout: the bronze match and the final."""
    finalists: list[Team] = []
    semifinal_losers: list[Team] = []
    for match in ctx.finished(2):
        if match.bracket_type != BRACKET_SEMIFINAL:
            continue
        if match.is_bye:
            finalists.append(ctx.resolve(match.team_a))
            continue
        finalists.append(ctx.resolve(match.winner_team))
        semifinal_losers.append(ctx.resolve(match.loser_team))

    seeded = ctx.game.team(ctx.game.seeded_finalist) if ctx.game.seeded_finalist else None
    if seeded is not None:
        finalists = _unique([seeded] + finalists)
        if len(finalists) == 1 and semifinal_losers:
            # the seeded team also won the semifinal; its opponent gets the rematch
            finalists.append(semifinal_losers[0])
        finalists = finalists[:2]
        _, round_one_losers = _split_results(ctx, 1)
        finalist_letters = {team.letter for team in finalists}
        bronze_pool = [
            team
            for team in _unique(round_one_losers + semifinal_losers)
            if team.letter not in finalist_letters
        ]
    else:
        bronze_pool = semifinal_losers

    builder = _RoundBuilder(ctx.next_round)
    if len(bronze_pool) >= 2:
        builder.add(bronze_pool[0], bronze_pool[1], BRACKET_BRONZE)
    elif bronze_pool:
        builder.walkover(bronze_pool[0], BRACKET_BRONZE)

    if len(finalists) >= 2:
        builder.add(finalists[0], finalists[1], BRACKET_FINAL)
    elif finalists:
        builder.walkover(finalists[0], BRACKET_FINAL)

    champion = finalists[0].letter if finalists else None
    return RoundPlan(builder.matches, champion=None if builder.matches else champion)


NextRoundRule = Callable[[RoundContext], RoundPlan]

NEXT_ROUND_RULES: dict[tuple[str, int], NextRoundRule] = {
    (FORMAT_PICKLE, 1): pickle_round_two,
    (FORMAT_PICKLE, 2): pickle_final,
    (FORMAT_QUICK_KNOCKOUT, 1): knockout_semifinals,
    (FORMAT_QUICK_KNOCKOUT, 2): knockout_finals,
}


def plan_next_round(
    game: GameRecord, completed_round: int, all_matches: list[MatchRecord]
) -> RoundPlan:
    """Decide the round after ``completed_round``."""
    rule = NEXT_ROUND_RULES.get((game.type, completed_round))
    if rule is None:
        return RoundPlan()
    plan = rule(RoundContext(game, completed_round, all_matches))
    for match in plan.matches:
        match.game_id = game.id
    logger.info(
        "Game %s (%s) after round %d: %s",
        game.id,
        game.type,
        completed_round,
        describe_matches(plan.matches) or "no further matches",
    )
    return plan
