"""Per-player point deltas for a completed game."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pickleroom.core.constants import MEDALS, PARTICIPATION_POINTS, POINT_TABLE

from .models import GameRecord, Player

logger = logging.getLogger(__name__)


@dataclass
class PointDelta:
    """Points owed to one participant, keyed by who they are rather than which team."""

    identity: str
    player: Player
    individual_points: float = 0
    team_points: float = 0
    won_medal: bool = False

    def to_dict(self) -> dict:
        return {
            "identity": self.identity,
            "name": self.player.name,
            "individualPoints": self.individual_points,
            "teamPoints": self.team_points,
            "wonMedal": self.won_medal,
        }


def compute_point_deltas(game: GameRecord) -> list[PointDelta]:
    """Apply the point table to every medal team and participation to everyone else.

    A player on two teams is credited once per medal team but participation
    and stats only once.
    """
    deltas: dict[str, PointDelta] = {}
    for team in game.teams:
        for player in team.players:
            key = player.identity_key()
            if key is None:
                logger.warning(
                    "Player %r on team %s has no user id or mobile; skipping points",
                    player.name,
                    team.letter,
                )
                continue
            deltas.setdefault(key, PointDelta(identity=key, player=player))

    for medal in MEDALS:
        record = game.medals.get(medal)
        team = game.team(record.team) if record and record.team else None
        if team is None or not team.players:
            continue
        points = POINT_TABLE[medal]
        team_share = points["team"] / len(team.players)
        for player in team.players:
            delta = deltas.get(player.identity_key() or "")
            if delta is None:
                continue
            delta.individual_points += points["individual"]
            delta.team_points += team_share
            delta.won_medal = True

    for delta in deltas.values():
        if not delta.won_medal:
            delta.individual_points += PARTICIPATION_POINTS

    return list(deltas.values())
