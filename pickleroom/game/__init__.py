"""Game blueprint: tournament formats, progression and scoring."""

from flask import Blueprint

bp = Blueprint("game", __name__, url_prefix="/game")

from . import routes  # noqa: E402, F401
from .services import GameService  # noqa: E402

__all__ = ["GameService", "routes"]
