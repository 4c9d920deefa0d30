"""Medal calculation for completed games."""

from __future__ import annotations

import logging
from typing import Optional

from pickleroom.core.constants import (
    BRACKET_BRONZE,
    BRACKET_FINAL,
    BRACKET_LOSERS,
    BRACKET_WINNERS,
    BRONZE,
    FORMAT_PICKLE,
    FORMAT_QUICK_KNOCKOUT,
    GOLD,
    MEDALS,
    SILVER,
)

from .models import GameRecord, MatchRecord, MedalRecord, Team, empty_medals

logger = logging.getLogger(__name__)


class MedalTable:
    """Collects medal winners; a team can hold at most one medal and BYE none."""

    def __init__(self, game: GameRecord) -> None:
        self.game = game
        self.medals = empty_medals()

    def holder(self, team: Optional[Team]) -> Optional[str]:
        if team is None:
            return None
        for name, record in self.medals.items():
            if record.team == team.letter:
                return name
        return None

    def award(self, medal: str, team: Optional[Team]) -> bool:
        if team is None or team.is_bye or self.medals[medal].team:
            return False
        if self.holder(team) is not None:
            return False
        live = self.game.team(team.letter) or team
        self.medals[medal] = MedalRecord(team=live.letter, players=live.registered_ids())
        return True


def _last(matches: list[MatchRecord]) -> Optional[MatchRecord]:
    ordered = sorted(matches, key=lambda m: (m.round_number, m.match_number))
    return ordered[-1] if ordered else None


def _finals_medals(table: MedalTable, matches: list[MatchRecord]) -> None:
    final = _last([m for m in matches if m.bracket_type == BRACKET_FINAL and m.is_finished])
    if final is not None:
        table.award(GOLD, final.winner_team)
        table.award(SILVER, final.loser_team)


def _pickle_medals(table: MedalTable, matches: list[MatchRecord]) -> None:
    _finals_medals(table, matches)
    if not table.medals[GOLD].team and table.game.champion_team:
        table.award(GOLD, table.game.team(table.game.champion_team))

    finished = [m for m in matches if m.is_finished]
    last_losers = _last([m for m in finished if m.bracket_type == BRACKET_LOSERS])
    if last_losers is not None and table.award(BRONZE, last_losers.winner_team):
        return

    # bronze falls back to the last team knocked out of the winners bracket
    last_winners = _last(
        [m for m in finished if m.bracket_type == BRACKET_WINNERS and not m.is_bye]
    )
    if last_winners is not None:
        table.award(BRONZE, last_winners.loser_team)


def _knockout_medals(table: MedalTable, matches: list[MatchRecord]) -> None:
    _finals_medals(table, matches)
    if not table.medals[GOLD].team and table.game.champion_team:
        table.award(GOLD, table.game.team(table.game.champion_team))

    bronze = _last([m for m in matches if m.bracket_type == BRACKET_BRONZE and m.is_finished])
    if bronze is not None:
        table.award(BRONZE, bronze.winner_team)


def _standings_medals(table: MedalTable, matches: list[MatchRecord]) -> None:
    """Rank by wins; ties keep team order."""
    standings = sorted(table.game.teams, key=lambda t: t.wins, reverse=True)
    for medal, team in zip(MEDALS, standings):
        table.award(medal, team)


def calculate_medals(game: GameRecord, matches: list[MatchRecord]) -> dict[str, MedalRecord]:
    """Work out gold, silver and bronze from the finished matches of a game."""
    table = MedalTable(game)
    if game.type == FORMAT_PICKLE:
        _pickle_medals(table, matches)
    elif game.type == FORMAT_QUICK_KNOCKOUT:
        _knockout_medals(table, matches)
    else:
        _standings_medals(table, matches)

    logger.info(
        "Medals for game %s: %s",
        game.id,
        {name: record.team for name, record in table.medals.items()},
    )
    return table.medals


def apply_medals(game: GameRecord, medals: dict[str, MedalRecord]) -> None:
    """Record medals on the game and stamp each medal team."""
    game.medals = medals
    for team in game.teams:
        team.medal = None
    for name, record in medals.items():
        team = game.team(record.team) if record.team else None
        if team is not None:
            team.medal = name
