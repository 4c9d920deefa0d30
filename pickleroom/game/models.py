"""Data models for the game blueprint."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, TypedDict

from pickleroom.core.constants import (
    BYE_LETTER,
    GAME_PENDING,
    MATCH_FINISHED,
    MATCH_PENDING,
    MEDALS,
)
from pickleroom.core.types import FirestoreDocument
from pickleroom.errors import ValidationError

from .utils import normalize_mobile


class PlayerDocument(TypedDict, total=False):
    """A player entry inside a team snapshot."""

    userId: Optional[str]
    name: str
    mobile: Optional[str]
    playsTwice: bool


class TeamDocument(TypedDict, total=False):
    """A team snapshot stored on a game or a match."""

    letter: str
    players: list[PlayerDocument]
    wins: int
    totalPoints: float
    points: float
    medal: Optional[str]


class MedalDocument(TypedDict):
    """Who won a given medal."""

    team: Optional[str]
    players: list[str]


class Game(FirestoreDocument, total=False):
    """A game document in Firestore."""

    roomId: str
    createdBy: str
    type: str
    teams: list[TeamDocument]
    matchIds: list[str]
    currentRound: int
    medals: dict[str, MedalDocument]
    pointsAssigned: bool
    status: str
    seededFinalist: Optional[str]
    championTeam: Optional[str]
    participantIds: list[str]
    completedAt: Any


class Match(FirestoreDocument, total=False):
    """A match document in Firestore."""

    gameId: str
    roundNumber: int
    matchNumber: int
    teamA: TeamDocument
    teamB: TeamDocument
    scoreA: Optional[int]
    scoreB: Optional[int]
    winner: Optional[str]
    status: str
    bracketType: Optional[str]
    isBye: bool


@dataclass
class Player:
    """A registered user or an anonymous name plus contact handle."""

    name: str
    user_id: Optional[str] = None
    mobile: Optional[str] = None
    plays_twice: bool = False

    @property
    def is_registered(self) -> bool:
        return bool(self.user_id)

    def identity_key(self) -> Optional[str]:
        """Key used to credit this player, or None if they cannot be credited."""
        if self.user_id:
            return f"user:{self.user_id}"
        if self.mobile:
            return f"mobile:{normalize_mobile(self.mobile)}"
        return None

    def to_dict(self) -> PlayerDocument:
        data: PlayerDocument = {
            "userId": self.user_id,
            "name": self.name,
            "mobile": self.mobile,
        }
        if self.plays_twice:
            data["playsTwice"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Player:
        return cls(
            name=data.get("name") or "Unknown Player",
            user_id=data.get("userId") or None,
            mobile=data.get("mobile") or None,
            plays_twice=bool(data.get("playsTwice", False)),
        )


@dataclass
class Team:
    """A lettered team of players; fixed once the game starts."""

    letter: str
    players: list[Player] = field(default_factory=list)
    wins: int = 0
    total_points: float = 0
    medal: Optional[str] = None

    @property
    def is_bye(self) -> bool:
        return self.letter == BYE_LETTER

    def registered_ids(self) -> list[str]:
        return [p.user_id for p in self.players if p.user_id]

    def to_dict(self) -> TeamDocument:
        return {
            "letter": self.letter,
            "players": [p.to_dict() for p in self.players],
            "wins": self.wins,
            "totalPoints": self.total_points,
            "medal": self.medal,
        }

    def to_match_dict(self) -> TeamDocument:
        """Snapshot written onto a match document."""
        return {
            "letter": self.letter,
            "players": [p.to_dict() for p in self.players],
            "points": self.total_points,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Team:
        return cls(
            letter=data["letter"],
            players=[Player.from_dict(p) for p in data.get("players") or []],
            wins=int(data.get("wins") or 0),
            total_points=data.get("totalPoints", data.get("points")) or 0,
            medal=data.get("medal"),
        )


@dataclass
class MatchRecord:
    """One match of a game, in engine form."""

    round_number: int
    match_number: int
    team_a: Team
    team_b: Team
    id: Optional[str] = None
    game_id: Optional[str] = None
    score_a: Optional[int] = None
    score_b: Optional[int] = None
    winner: Optional[str] = None
    status: str = MATCH_PENDING
    bracket_type: Optional[str] = None
    is_bye: bool = False

    @property
    def is_finished(self) -> bool:
        return self.status == MATCH_FINISHED

    @property
    def winner_team(self) -> Optional[Team]:
        if self.winner == "A":
            return self.team_a
        if self.winner == "B":
            return self.team_b
        return None

    @property
    def loser_team(self) -> Optional[Team]:
        if self.winner == "A":
            return self.team_b
        if self.winner == "B":
            return self.team_a
        return None

    @property
    def margin(self) -> int:
        return abs((self.score_a or 0) - (self.score_b or 0))

    def letters(self) -> set[str]:
        return {self.team_a.letter, self.team_b.letter}

    def to_dict(self) -> Match:
        data: Match = {
            "roundNumber": self.round_number,
            "matchNumber": self.match_number,
            "teamA": self.team_a.to_match_dict(),
            "teamB": self.team_b.to_match_dict(),
            "scoreA": self.score_a,
            "scoreB": self.score_b,
            "winner": self.winner,
            "status": self.status,
            "bracketType": self.bracket_type,
            "isBye": self.is_bye,
        }
        if self.game_id:
            data["gameId"] = self.game_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], match_id: Optional[str] = None) -> MatchRecord:
        return cls(
            id=match_id or data.get("id"),
            game_id=data.get("gameId"),
            round_number=int(data.get("roundNumber", 1)),
            match_number=int(data["matchNumber"]),
            team_a=Team.from_dict(data["teamA"]),
            team_b=Team.from_dict(data["teamB"]),
            score_a=data.get("scoreA"),
            score_b=data.get("scoreB"),
            winner=data.get("winner"),
            status=data.get("status", MATCH_PENDING),
            bracket_type=data.get("bracketType"),
            is_bye=bool(data.get("isBye", False)),
        )


@dataclass
class MedalRecord:
    """Winning team letter and its registered players for one medal."""

    team: Optional[str] = None
    players: list[str] = field(default_factory=list)

    def to_dict(self) -> MedalDocument:
        return {"team": self.team, "players": list(self.players)}


def empty_medals() -> dict[str, MedalRecord]:
    return {medal: MedalRecord() for medal in MEDALS}


@dataclass
class GameRecord:
    """A tournament in engine form."""

    type: str
    teams: list[Team]
    id: Optional[str] = None
    room_id: Optional[str] = None
    created_by: Optional[str] = None
    match_ids: list[str] = field(default_factory=list)
    current_round: int = 1
    medals: dict[str, MedalRecord] = field(default_factory=empty_medals)
    points_assigned: bool = False
    status: str = GAME_PENDING
    seeded_finalist: Optional[str] = None
    champion_team: Optional[str] = None

    def team(self, letter: str) -> Optional[Team]:
        for team in self.teams:
            if team.letter == letter:
                return team
        return None

    def participant_ids(self) -> list[str]:
        seen: list[str] = []
        for team in self.teams:
            for uid in team.registered_ids():
                if uid not in seen:
                    seen.append(uid)
        return seen

    def to_dict(self) -> Game:
        data: Game = {
            "type": self.type,
            "teams": [t.to_dict() for t in self.teams],
            "matchIds": list(self.match_ids),
            "currentRound": self.current_round,
            "medals": {name: record.to_dict() for name, record in self.medals.items()},
            "pointsAssigned": self.points_assigned,
            "status": self.status,
            "seededFinalist": self.seeded_finalist,
            "championTeam": self.champion_team,
            "participantIds": self.participant_ids(),
        }
        if self.room_id:
            data["roomId"] = self.room_id
        if self.created_by:
            data["createdBy"] = self.created_by
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], game_id: Optional[str] = None) -> GameRecord:
        medals = empty_medals()
        for name, record in (data.get("medals") or {}).items():
            if name in medals and record:
                medals[name] = MedalRecord(
                    team=record.get("team"), players=list(record.get("players") or [])
                )
        return cls(
            id=game_id or data.get("id"),
            room_id=data.get("roomId"),
            created_by=data.get("createdBy"),
            type=data["type"],
            teams=[Team.from_dict(t) for t in data.get("teams") or []],
            match_ids=list(data.get("matchIds") or []),
            current_round=int(data.get("currentRound", 1)),
            medals=medals,
            points_assigned=bool(data.get("pointsAssigned", False)),
            status=data.get("status", GAME_PENDING),
            seeded_finalist=data.get("seededFinalist"),
            champion_team=data.get("championTeam"),
        )


@dataclass
class ResultSubmission:
    """Dataclass for a match result submission."""

    match_id: str
    score_a: Any
    score_b: Any

    def validate(self) -> None:
        """Validate the submission for obvious errors."""
        if self.score_a is None or self.score_b is None:
            raise ValidationError("Both scores are required.")
        if isinstance(self.score_a, bool) or isinstance(self.score_b, bool):
            raise ValidationError("Scores must be whole numbers.")
        try:
            score_a = int(self.score_a)
            score_b = int(self.score_b)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Scores must be whole numbers.") from exc
        if score_a != self.score_a or score_b != self.score_b:
            raise ValidationError("Scores must be whole numbers.")
        if score_a < 0 or score_b < 0:
            raise ValidationError("Scores cannot be negative.")
        if score_a == score_b:
            raise ValidationError("Scores cannot be equal.")
        self.score_a = score_a
        self.score_b = score_b
