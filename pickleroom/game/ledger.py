"""Crediting points and stats to player profiles."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore

from pickleroom.core.constants import UNREGISTERED_PLAYERS_COLLECTION, USERS_COLLECTION

from .utils import normalize_mobile

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

    from .engine import MatchCredit
    from .models import Player
    from .points import PointDelta

logger = logging.getLogger(__name__)


@dataclass
class CreditReport:
    """Which participants were credited and which failed."""

    credited: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def extend(self, other: CreditReport) -> None:
        self.credited.extend(other.credited)
        self.failed.extend(other.failed)

    def to_dict(self) -> dict[str, Any]:
        return {"credited": list(self.credited), "failed": list(self.failed)}


class PlayerLedger:
    """Writes point and stat increments for registered and anonymous players."""

    @staticmethod
    def _player_ref(db: Client, player: Player) -> Optional[DocumentReference]:
        if player.user_id:
            return db.collection(USERS_COLLECTION).document(player.user_id)
        if player.mobile:
            return db.collection(UNREGISTERED_PLAYERS_COLLECTION).document(
                normalize_mobile(player.mobile)
            )
        return None

    @staticmethod
    def _write(db: Client, player: Player, fields: dict[str, Any]) -> None:
        """Apply increments to a player; anonymous profiles are created on demand."""
        ref = PlayerLedger._player_ref(db, player)
        if ref is None:
            raise ValueError(f"Player {player.name!r} has no user id or mobile.")
        if player.is_registered:
            ref.update(fields)
            return

        # set(merge=True) needs nested maps instead of dotted paths
        nested: dict[str, Any] = {"name": player.name, "mobile": player.mobile}
        for key, value in fields.items():
            if key.startswith("stats."):
                nested.setdefault("stats", {})[key.split(".", 1)[1]] = value
            else:
                nested[f"pending{key[0].upper()}{key[1:]}"] = value
        ref.set(nested, merge=True)

    @staticmethod
    def credit_match_win(
        db: Client, credit: MatchCredit, game_id: Optional[str] = None
    ) -> CreditReport:
        """Give every player of a match-winning team their individual point."""
        report = CreditReport()
        for player in credit.players:
            label = player.identity_key() or player.name
            try:
                PlayerLedger._write(
                    db,
                    player,
                    {"individualPoints": firestore.Increment(credit.individual_points)},
                )
                report.credited.append(label)
            except Exception as e:
                logger.error(
                    f"Failed to credit match win to {label} (game {game_id}, "
                    f"team {credit.team_letter}): {e}"
                )
                report.failed.append(label)
        return report

    @staticmethod
    def credit_match_wins(
        db: Client, credits: list[MatchCredit], game_id: Optional[str] = None
    ) -> CreditReport:
        report = CreditReport()
        for credit in credits:
            report.extend(PlayerLedger.credit_match_win(db, credit, game_id))
        return report

    @staticmethod
    def apply_deltas(
        db: Client, deltas: list[PointDelta], game_id: Optional[str] = None
    ) -> CreditReport:
        """Credit tournament points and update game stats once per participant."""
        report = CreditReport()
        for delta in deltas:
            fields: dict[str, Any] = {
                "individualPoints": firestore.Increment(delta.individual_points),
                "teamPoints": firestore.Increment(delta.team_points),
                "stats.totalGames": firestore.Increment(1),
            }
            if delta.won_medal:
                fields["stats.totalWins"] = firestore.Increment(1)
                fields["stats.streak"] = firestore.Increment(1)
            else:
                fields["stats.streak"] = 0

            try:
                PlayerLedger._write(db, delta.player, fields)
                report.credited.append(delta.identity)
            except Exception as e:
                logger.error(
                    f"Failed to assign points to {delta.identity} (game {game_id}): {e}"
                )
                report.failed.append(delta.identity)

        logger.info(
            "Assigned points for game %s: %d credited, %d failed",
            game_id,
            len(report.credited),
            len(report.failed),
        )
        return report
