"""The five supported game formats and their structural constraints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pickleroom.core.constants import (
    FORMAT_ONE_VS_ONE,
    FORMAT_PICKLE,
    FORMAT_QUICK_KNOCKOUT,
    FORMAT_ROUND_ROBIN,
    FORMAT_TWO_VS_TWO,
)
from pickleroom.errors import ValidationError

from .models import Team


@dataclass(frozen=True)
class FormatRule:
    """Team-count, roster and round limits for one format."""

    name: str
    display_name: str
    min_teams: int
    max_teams: Optional[int]
    max_rounds: int
    roster_size: Optional[int] = None

    def allows_team_count(self, count: int) -> bool:
        if count < self.min_teams:
            return False
        return self.max_teams is None or count <= self.max_teams

    def describe_team_count(self) -> str:
        if self.max_teams == self.min_teams:
            return f"exactly {self.min_teams} teams"
        if self.max_teams is None:
            return f"at least {self.min_teams} teams"
        return f"between {self.min_teams} and {self.max_teams} teams"


FORMATS: dict[str, FormatRule] = {
    FORMAT_ONE_VS_ONE: FormatRule(
        FORMAT_ONE_VS_ONE, "1 vs 1", min_teams=2, max_teams=2, max_rounds=1, roster_size=1
    ),
    FORMAT_TWO_VS_TWO: FormatRule(
        FORMAT_TWO_VS_TWO, "2 vs 2", min_teams=2, max_teams=2, max_rounds=1, roster_size=2
    ),
    FORMAT_ROUND_ROBIN: FormatRule(
        FORMAT_ROUND_ROBIN, "Round Robin", min_teams=2, max_teams=None, max_rounds=1
    ),
    # Three rounds can only fold eight teams into a single final.
    FORMAT_QUICK_KNOCKOUT: FormatRule(
        FORMAT_QUICK_KNOCKOUT, "Quick Knockout", min_teams=2, max_teams=8, max_rounds=3
    ),
    FORMAT_PICKLE: FormatRule(
        FORMAT_PICKLE, "Pickle Format", min_teams=4, max_teams=None, max_rounds=3
    ),
}


def get_format(game_type: str) -> FormatRule:
    """Look up a format by its tag."""
    rule = FORMATS.get(game_type)
    if rule is None:
        valid = ", ".join(FORMATS)
        raise ValidationError(f"Invalid game type. Must be one of: {valid}.")
    return rule


def validate_teams(game_type: str, teams: list[Team]) -> FormatRule:
    """Check a team list against a format before any match is generated."""
    rule = get_format(game_type)

    if not rule.allows_team_count(len(teams)):
        raise ValidationError(
            f"{rule.display_name} requires {rule.describe_team_count()}, "
            f"got {len(teams)}."
        )

    seen: set[str] = set()
    for team in teams:
        letter = team.letter
        if not letter or len(letter) != 1 or not letter.isalpha():
            raise ValidationError(f"Invalid team letter: {letter!r}.")
        if letter in seen:
            raise ValidationError(f"Duplicate team letter: {letter}.")
        seen.add(letter)

        if not team.players:
            raise ValidationError(f"Team {letter} has no players.")
        if rule.roster_size is not None and len(team.players) != rule.roster_size:
            raise ValidationError(
                f"{rule.display_name} requires {rule.roster_size} player(s) per team; "
                f"team {letter} has {len(team.players)}."
            )

    return rule
