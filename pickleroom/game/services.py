"""Service layer for game data access and orchestration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from firebase_admin import firestore

from pickleroom.core.constants import (
    GAME_COMPLETED,
    GAME_LIVE,
    GAME_PENDING,
    GAMES_COLLECTION,
    MATCH_LIVE,
    MATCHES_COLLECTION,
    RECENT_GAMES_LIMIT,
)
from pickleroom.errors import ConflictError, NotFoundError, ValidationError

from . import engine
from .formats import get_format
from .ledger import CreditReport, PlayerLedger
from .models import GameRecord, MatchRecord, ResultSubmission, Team

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (GAME_PENDING, GAME_LIVE)


def serialize_game(game: GameRecord, matches: list[MatchRecord]) -> dict[str, Any]:
    """JSON-ready view of a game with its matches in round order."""
    data: dict[str, Any] = dict(game.to_dict())
    data["id"] = game.id
    ordered = sorted(matches, key=lambda m: (m.round_number, m.match_number))
    data["matches"] = [{**m.to_dict(), "id": m.id} for m in ordered]
    return data


class GameService:
    """Service class for game-related operations."""

    @staticmethod
    def _load_matches(
        db: Client, match_ids: list[str], transaction: Optional[Transaction] = None
    ) -> list[MatchRecord]:
        matches = []
        for match_id in match_ids:
            ref = db.collection(MATCHES_COLLECTION).document(match_id)
            snap = ref.get(transaction=transaction) if transaction else ref.get()
            if not snap.exists:
                logger.warning("Match %s is listed on a game but missing", match_id)
                continue
            matches.append(MatchRecord.from_dict(snap.to_dict() or {}, snap.id))
        return matches

    @staticmethod
    def _load_game(
        db: Client, game_id: str, transaction: Optional[Transaction] = None
    ) -> GameRecord:
        ref = db.collection(GAMES_COLLECTION).document(game_id)
        snap = ref.get(transaction=transaction) if transaction else ref.get()
        if not snap.exists:
            raise NotFoundError("Game not found.")
        return GameRecord.from_dict(snap.to_dict() or {}, snap.id)

    @staticmethod
    def _parse_teams(raw_teams: Any) -> list[Team]:
        if not isinstance(raw_teams, list) or not raw_teams:
            raise ValidationError("Teams are required.")
        teams = []
        for raw in raw_teams:
            if not isinstance(raw, dict) or "letter" not in raw:
                raise ValidationError("Each team needs a letter and players.")
            team = Team.from_dict(raw)
            team.wins = 0
            team.medal = None
            teams.append(team)
        return teams

    @staticmethod
    def _active_game_snapshot(db: Client, room_id: str) -> Any:
        docs = (
            db.collection(GAMES_COLLECTION)
            .where(filter=firestore.FieldFilter("roomId", "==", room_id))
            .stream()
        )
        for doc in docs:
            if (doc.to_dict() or {}).get("status") in ACTIVE_STATUSES:
                return doc
        return None

    @staticmethod
    def create_game(db: Client, data: dict[str, Any], user_uid: str) -> dict[str, Any]:
        """Validate teams, generate round 1 and store the game with its matches."""
        room_id = data.get("roomId")
        game_type = data.get("gameType")
        if not room_id or not game_type:
            raise ValidationError("Room ID, game type and teams are required.")

        teams = GameService._parse_teams(data.get("teams"))
        matches = engine.start_tournament(teams, game_type)

        if GameService._active_game_snapshot(db, room_id) is not None:
            raise ConflictError("This room already has a game in progress.")

        game_ref = db.collection(GAMES_COLLECTION).document()
        game = GameRecord(
            type=game_type,
            teams=teams,
            id=game_ref.id,
            room_id=room_id,
            created_by=user_uid,
            status=GAME_LIVE,
        )

        batch = db.batch()
        for match in matches:
            match_ref = db.collection(MATCHES_COLLECTION).document()
            match.id = match_ref.id
            match.game_id = game.id
            batch.set(match_ref, {**match.to_dict(), "createdAt": firestore.SERVER_TIMESTAMP})
            game.match_ids.append(match_ref.id)
        batch.set(game_ref, {**game.to_dict(), "createdAt": firestore.SERVER_TIMESTAMP})
        batch.commit()

        logger.info(
            "Created %s game %s in room %s with %d teams",
            game_type,
            game.id,
            room_id,
            len(teams),
        )
        return serialize_game(game, matches)

    @staticmethod
    def get_game(db: Client, game_id: str) -> dict[str, Any]:
        """Fetch a game and its matches."""
        game = GameService._load_game(db, game_id)
        return serialize_game(game, GameService._load_matches(db, game.match_ids))

    @staticmethod
    def get_active_game_for_room(db: Client, room_id: str) -> Optional[dict[str, Any]]:
        """The pending or live game of a room, if any."""
        snap = GameService._active_game_snapshot(db, room_id)
        if snap is None:
            return None
        game = GameRecord.from_dict(snap.to_dict() or {}, snap.id)
        return serialize_game(game, GameService._load_matches(db, game.match_ids))

    @staticmethod
    def get_user_recent_games(
        db: Client, user_uid: str, limit: int = RECENT_GAMES_LIMIT
    ) -> list[dict[str, Any]]:
        """Completed games the user created or played in, newest first."""
        games_ref = db.collection(GAMES_COLLECTION)
        created = games_ref.where(
            filter=firestore.FieldFilter("createdBy", "==", user_uid)
        ).stream()
        played = games_ref.where(
            filter=firestore.FieldFilter("participantIds", "array_contains", user_uid)
        ).stream()

        seen_ids: set[str] = set()
        docs: list[dict[str, Any]] = []
        for doc in list(created) + list(played):
            if doc.id in seen_ids:
                continue
            seen_ids.add(doc.id)
            data = doc.to_dict() or {}
            if data.get("status") != GAME_COMPLETED:
                continue
            data["id"] = doc.id
            docs.append(data)

        docs.sort(
            key=lambda d: (d.get("createdAt") is not None, d.get("createdAt")),
            reverse=True,
        )
        return [GameService._summarize_for_user(d, user_uid) for d in docs[:limit]]

    @staticmethod
    def _summarize_for_user(data: dict[str, Any], user_uid: str) -> dict[str, Any]:
        game = GameRecord.from_dict(data, data["id"])
        user_team = next(
            (t for t in game.teams if user_uid in t.registered_ids()), None
        )
        gold = game.medals.get("gold")
        try:
            display_name = get_format(game.type).display_name
        except ValidationError:
            display_name = game.type
        return {
            "id": game.id,
            "roomId": game.room_id,
            "gameType": display_name,
            "date": data.get("createdAt"),
            "winner": f"Team {gold.team}" if gold and gold.team else None,
            "userTeam": user_team.letter if user_team else None,
            "points": user_team.total_points if user_team else 0,
            "medal": user_team.medal if user_team else None,
            "status": game.status,
        }

    @staticmethod
    def start_match(db: Client, match_id: str) -> dict[str, Any]:
        """Mark a pending match as being played."""
        match_ref = db.collection(MATCHES_COLLECTION).document(match_id)
        snap = match_ref.get()
        if not snap.exists:
            raise NotFoundError("Match not found.")
        match = MatchRecord.from_dict(snap.to_dict() or {}, snap.id)
        if match.is_finished:
            raise ConflictError("Match is already finished.")
        if match.status != MATCH_LIVE:
            match_ref.update({"status": MATCH_LIVE})
            match.status = MATCH_LIVE
        return {**match.to_dict(), "id": match.id}

    @staticmethod
    def _submit_in_transaction(
        transaction: Transaction,
        db: Client,
        match_ref: DocumentReference,
        submission: ResultSubmission,
    ) -> tuple[GameRecord, list[MatchRecord], engine.SubmitOutcome]:
        """Read the game, run the engine and stage every write on the transaction."""
        match_snap = match_ref.get(transaction=transaction)
        if not match_snap.exists:
            raise NotFoundError("Match not found.")
        game_id = (match_snap.to_dict() or {}).get("gameId")
        if not game_id:
            raise NotFoundError("Match is not attached to a game.")

        game_ref = db.collection(GAMES_COLLECTION).document(game_id)
        game = GameService._load_game(db, game_id, transaction)
        if match_ref.id not in game.match_ids:
            raise NotFoundError("Match not found in this game.")
        matches = GameService._load_matches(db, game.match_ids, transaction)
        outcome = engine.submit_result(
            game, matches, match_ref.id, submission.score_a, submission.score_b
        )

        # all reads happen above; Firestore rejects reads after writes
        for new_match in outcome.new_matches:
            new_ref = db.collection(MATCHES_COLLECTION).document()
            new_match.id = new_ref.id
            new_match.game_id = game.id
            transaction.set(
                new_ref, {**new_match.to_dict(), "createdAt": firestore.SERVER_TIMESTAMP}
            )
            game.match_ids.append(new_ref.id)

        match = outcome.match
        transaction.update(
            match_ref,
            {
                "scoreA": match.score_a,
                "scoreB": match.score_b,
                "winner": match.winner,
                "status": match.status,
            },
        )

        game_update: dict[str, Any] = dict(game.to_dict())
        game_update.pop("roomId", None)
        game_update.pop("createdBy", None)
        if outcome.tournament_completed:
            game_update["completedAt"] = firestore.SERVER_TIMESTAMP
        transaction.update(game_ref, game_update)

        return game, matches + outcome.new_matches, outcome

    @staticmethod
    def submit_result(
        db: Client, match_id: str, score_a: Any, score_b: Any
    ) -> dict[str, Any]:
        """Record a match result and advance the game, crediting players after commit."""
        submission = ResultSubmission(match_id=match_id, score_a=score_a, score_b=score_b)
        submission.validate()

        match_ref = db.collection(MATCHES_COLLECTION).document(match_id)
        submit = firestore.transactional(GameService._submit_in_transaction)
        game, matches, outcome = submit(db.transaction(), db, match_ref, submission)

        report = PlayerLedger.credit_match_wins(db, outcome.credits, game.id)
        result: dict[str, Any] = {
            "game": serialize_game(game, matches),
            "newMatches": [m.id for m in outcome.new_matches],
            "roundAdvanced": outcome.round_advanced,
            "tournamentCompleted": outcome.tournament_completed,
            "credits": report.to_dict(),
        }
        if outcome.tournament_completed:
            result["points"] = GameService.assign_points(db, game.id)
        return result

    @staticmethod
    def _finalize_in_transaction(
        transaction: Transaction, db: Client, game_id: str
    ) -> GameRecord:
        game = GameService._load_game(db, game_id, transaction)
        matches = GameService._load_matches(db, game.match_ids, transaction)

        if game.status != GAME_COMPLETED:
            if not matches or any(not m.is_finished for m in matches):
                raise ConflictError("Game still has matches to play.")
            engine.finalize_outcome(game, matches)
            game_ref = db.collection(GAMES_COLLECTION).document(game_id)
            transaction.update(
                game_ref,
                {
                    "status": game.status,
                    "medals": game.to_dict()["medals"],
                    "teams": [t.to_dict() for t in game.teams],
                    "completedAt": firestore.SERVER_TIMESTAMP,
                },
            )
        return game

    @staticmethod
    def calculate_winners(db: Client, game_id: str) -> dict[str, Any]:
        """Medals of a game, finalizing it if every match is finished."""
        finalize = firestore.transactional(GameService._finalize_in_transaction)
        game = finalize(db.transaction(), db, game_id)
        return {name: record.to_dict() for name, record in game.medals.items()}

    @staticmethod
    def _claim_points_in_transaction(
        transaction: Transaction, db: Client, game_id: str
    ) -> Optional[list[Any]]:
        """Flip pointsAssigned and return the deltas, or None if already claimed."""
        game = GameService._load_game(db, game_id, transaction)
        if game.points_assigned:
            return None
        deltas = engine.distribute_points(game)
        transaction.update(
            db.collection(GAMES_COLLECTION).document(game_id), {"pointsAssigned": True}
        )
        return deltas

    @staticmethod
    def assign_points(db: Client, game_id: str) -> dict[str, Any]:
        """Credit tournament points for a completed game exactly once."""
        claim = firestore.transactional(GameService._claim_points_in_transaction)
        deltas = claim(db.transaction(), db, game_id)
        if deltas is None:
            return {"alreadyAssigned": True, "credited": [], "failed": [], "deltas": []}

        report: CreditReport = PlayerLedger.apply_deltas(db, deltas, game_id)
        return {
            "alreadyAssigned": False,
            **report.to_dict(),
            "deltas": [d.to_dict() for d in deltas],
        }
