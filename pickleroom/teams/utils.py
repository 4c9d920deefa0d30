"""Team-related utility functions."""

from __future__ import annotations

import dataclasses
import random
from typing import Optional

from pickleroom.core.constants import (
    FORMAT_ONE_VS_ONE,
    FORMAT_TWO_VS_TWO,
    TEAM_LETTERS,
)
from pickleroom.errors import ValidationError
from pickleroom.game.formats import get_format, validate_teams
from pickleroom.game.models import Player, Team

# Exact head counts for the fixed-size formats
REQUIRED_PLAYERS = {FORMAT_ONE_VS_ONE: 2, FORMAT_TWO_VS_TWO: 4}


def assign_teams(
    players: list[Player], game_type: str, rng: Optional[random.Random] = None
) -> list[Team]:
    """
    Shuffles players into lettered teams for a game format.

    One-vs-one puts one player on each team; every other format uses pairs.
    When the head count is odd the last player is partnered with a randomly
    picked, already assigned player, who is marked as playing twice.
    """
    rule = get_format(game_type)
    rng = rng or random.Random()

    required = REQUIRED_PLAYERS.get(game_type)
    if required is not None and len(players) != required:
        raise ValidationError(
            f"{rule.display_name} requires exactly {required} players, got {len(players)}."
        )
    if len(players) < 2:
        raise ValidationError("At least two players are needed to form teams.")

    shuffled = list(players)
    rng.shuffle(shuffled)
    size = rule.roster_size or 2

    rosters = [shuffled[i : i + size] for i in range(0, len(shuffled), size)]
    if len(rosters[-1]) < size:
        assigned = [p for roster in rosters[:-1] for p in roster]
        partner = rng.choice(assigned)
        rosters[-1].append(dataclasses.replace(partner, plays_twice=True))

    if len(rosters) > len(TEAM_LETTERS):
        raise ValidationError(f"Too many teams; at most {len(TEAM_LETTERS)} are allowed.")

    teams = [
        Team(letter=letter, players=roster)
        for letter, roster in zip(TEAM_LETTERS, rosters)
    ]
    validate_teams(game_type, teams)
    return teams
