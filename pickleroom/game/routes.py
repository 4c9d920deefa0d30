"""Routes for the game blueprint."""

from __future__ import annotations

from typing import Any

from firebase_admin import firestore
from flask import current_app, jsonify, request, session
from flask_wtf.csrf import generate_csrf

from pickleroom.auth.decorators import login_required
from pickleroom.core.constants import RECENT_GAMES_LIMIT
from pickleroom.errors import ValidationError
from pickleroom.teams import utils as team_utils

from . import bp
from .models import Player
from .services import GameService


def _json_body() -> dict[str, Any]:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


@bp.route("/csrf-token", methods=["GET"])
@login_required
def csrf_token() -> Any:
    """Token for the X-CSRFToken header of state-changing requests."""
    return jsonify({"success": True, "csrfToken": generate_csrf()})


@bp.route("/create", methods=["POST"])
@login_required
def create_game() -> Any:
    """Create a game for a room and generate its first round."""
    db = firestore.client()
    game = GameService.create_game(db, _json_body(), session["user_id"])
    current_app.logger.info(f"User {session['user_id']} created game {game['id']}")
    return (
        jsonify({"success": True, "message": "Game created successfully", "game": game}),
        201,
    )


@bp.route("/teams/assign", methods=["POST"])
@login_required
def assign_teams() -> Any:
    """Preview a random team split for the selected players."""
    payload = _json_body()
    raw_players = payload.get("players")
    if not isinstance(raw_players, list):
        raise ValidationError("Players are required.")
    players = [Player.from_dict(p) for p in raw_players if isinstance(p, dict)]
    teams = team_utils.assign_teams(players, payload.get("gameType", ""))
    return jsonify({"success": True, "teams": [t.to_dict() for t in teams]})


@bp.route("/user/recent", methods=["GET"])
@login_required
def user_recent_games() -> Any:
    """Completed games for the current user."""
    limit = request.args.get("limit", RECENT_GAMES_LIMIT, type=int)
    db = firestore.client()
    games = GameService.get_user_recent_games(db, session["user_id"], limit)
    return jsonify({"success": True, "games": games})


@bp.route("/room/<string:room_id>/active", methods=["GET"])
@login_required
def active_game(room_id: str) -> Any:
    """The pending or live game of a room."""
    db = firestore.client()
    game = GameService.get_active_game_for_room(db, room_id)
    return jsonify({"success": True, "game": game})


@bp.route("/<string:game_id>", methods=["GET"])
@login_required
def view_game(game_id: str) -> Any:
    """A game with all of its matches."""
    db = firestore.client()
    return jsonify({"success": True, "game": GameService.get_game(db, game_id)})


@bp.route("/match/<string:match_id>/start", methods=["PUT"])
@login_required
def start_match(match_id: str) -> Any:
    """Mark a match as being played."""
    db = firestore.client()
    match = GameService.start_match(db, match_id)
    return jsonify({"success": True, "message": "Match started", "match": match})


@bp.route("/match/<string:match_id>/result", methods=["PUT"])
@login_required
def submit_result(match_id: str) -> Any:
    """Record a match score and advance the game."""
    payload = _json_body()
    db = firestore.client()
    result = GameService.submit_result(
        db, match_id, payload.get("scoreA"), payload.get("scoreB")
    )

    failed = result["credits"]["failed"]
    if failed:
        current_app.logger.error(f"Match {match_id}: could not credit {failed}")
    message = "Match result updated successfully"
    if result["tournamentCompleted"]:
        message = "Match result updated; the game is complete"
    return jsonify({"success": True, "message": message, **result})


@bp.route("/<string:game_id>/calculate-winners", methods=["POST"])
@login_required
def calculate_winners(game_id: str) -> Any:
    """Compute medals for a finished game."""
    db = firestore.client()
    medals = GameService.calculate_winners(db, game_id)
    return jsonify({"success": True, "medals": medals})


@bp.route("/<string:game_id>/assign-points", methods=["POST"])
@login_required
def assign_points(game_id: str) -> Any:
    """Credit tournament points for a completed game, once."""
    db = firestore.client()
    result = GameService.assign_points(db, game_id)
    message = (
        "Points were already assigned"
        if result["alreadyAssigned"]
        else "Points assigned successfully"
    )
    return jsonify({"success": True, "message": message, **result})
