"""DuelBoard match document: model, repair/migration and mutation shaping."""
from __future__ import annotations
import copy
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Optional

logger = logging.getLogger("duelboard.match")

TEAMS = ("A", "B")
ROSTER_SIZES = (2, 3)
MIN_ROSTER_LENGTH = 3
DEFAULT_POINTS_TO_WIN = 50
DEFAULT_ROSTER_SIZE = 2

# Wire keys of the persisted document
KEY_PLAYERS = {"A": "playersA", "B": "playersB"}
KEY_TIMER = "timer"
KEY_END_TIME = "endTime"
KEY_PAUSED = "isPaused"
KEY_POINTS = "pointsToWin"
KEY_ROSTER_SIZE = "numPlayersPerTeam"

# Keys of the legacy shape: {"players": {"teamA": [...]}, "timer": {"paused": ...}}
_LEGACY_PLAYERS = "players"
_LEGACY_TEAM_KEYS = {"A": "teamA", "B": "teamB"}
_LEGACY_PAUSED = "paused"


def placeholder_name(position: int) -> str:
    """Name given to padded players; position is 1-based."""
    return f"Player {position} Name"


@dataclass(frozen=True)
class Player:
    name: str = ""
    score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "score": self.score}


@dataclass(frozen=True)
class TimerState:
    end_time: Optional[int] = None  # store-time ms at which the countdown hits zero

    def to_dict(self) -> dict[str, Any]:
        return {KEY_END_TIME: self.end_time}


def _default_roster() -> tuple[Player, ...]:
    return tuple(Player(placeholder_name(i + 1), 0) for i in range(MIN_ROSTER_LENGTH))


@dataclass(frozen=True)
class MatchDocument:
    """
    The single replicated match object. Instances are immutable; every
    mutation helper returns the partial fields of a new document.
    """
    players_a: tuple[Player, ...] = field(default_factory=_default_roster)
    players_b: tuple[Player, ...] = field(default_factory=_default_roster)
    timer: TimerState = field(default_factory=TimerState)
    is_paused: bool = True
    points_to_win: int = DEFAULT_POINTS_TO_WIN
    active_roster_size: int = DEFAULT_ROSTER_SIZE

    def roster(self, team: str) -> tuple[Player, ...]:
        return getattr(self, roster_field(team))

    def active_roster(self, team: str) -> tuple[Player, ...]:
        return self.roster(team)[:self.active_roster_size]

    def team_total(self, team: str) -> int:
        """Sum of scores of the active roster only."""
        return sum(p.score for p in self.active_roster(team))

    @property
    def is_running(self) -> bool:
        return not self.is_paused and self.timer.end_time is not None

    def merged(self, **fields: Any) -> "MatchDocument":
        """Shallow top-level merge; fields not given are carried over verbatim."""
        return replace(self, **fields)

    def to_dict(self) -> dict[str, Any]:
        return {
            KEY_PLAYERS["A"]: [p.to_dict() for p in self.players_a],
            KEY_PLAYERS["B"]: [p.to_dict() for p in self.players_b],
            KEY_TIMER: self.timer.to_dict(),
            KEY_PAUSED: self.is_paused,
            KEY_POINTS: self.points_to_win,
            KEY_ROSTER_SIZE: self.active_roster_size,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MatchDocument":
        """Build from an already repaired wire document."""
        return cls(
            players_a=tuple(Player(p["name"], p["score"]) for p in data[KEY_PLAYERS["A"]]),
            players_b=tuple(Player(p["name"], p["score"]) for p in data[KEY_PLAYERS["B"]]),
            timer=TimerState(end_time=data[KEY_TIMER].get(KEY_END_TIME)),
            is_paused=data[KEY_PAUSED],
            points_to_win=data[KEY_POINTS],
            active_roster_size=data[KEY_ROSTER_SIZE],
        )


def default_document(points_to_win: int = DEFAULT_POINTS_TO_WIN,
                     roster_size: int = DEFAULT_ROSTER_SIZE) -> MatchDocument:
    return MatchDocument(points_to_win=points_to_win, active_roster_size=roster_size)


def roster_field(team: str) -> str:
    if team not in TEAMS:
        raise ValueError(f"Unknown team: {team!r}")
    return f"players_{team.lower()}"


# ---- Repair / migration ----

def _coerce_score(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        score = int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, score)


def _whole_number(value: Any) -> Optional[int]:
    """The int a JSON number stands for, or None if it is not a whole number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _repair_player(raw: Any, position: int) -> dict[str, Any]:
    if not isinstance(raw, dict):
        return {"name": placeholder_name(position), "score": 0}
    name = raw.get("name")
    if not isinstance(name, str):
        name = placeholder_name(position)
    score = raw.get("score")
    if not (isinstance(score, int) and not isinstance(score, bool) and score >= 0):
        score = _coerce_score(score)
    if name is raw.get("name") and score is raw.get("score") and len(raw) == 2:
        return raw
    return {"name": name, "score": score}


def pad_roster(players: list, length: int = MIN_ROSTER_LENGTH) -> list:
    """Append placeholder players until the roster holds `length` entries."""
    padded = list(players)
    while len(padded) < length:
        padded.append({"name": placeholder_name(len(padded) + 1), "score": 0})
    return padded


def _migrate_legacy(doc: dict[str, Any]) -> None:
    legacy_players = doc.pop(_LEGACY_PLAYERS, None)
    if isinstance(legacy_players, dict):
        for team, legacy_key in _LEGACY_TEAM_KEYS.items():
            if KEY_PLAYERS[team] not in doc and isinstance(legacy_players.get(legacy_key), list):
                doc[KEY_PLAYERS[team]] = legacy_players[legacy_key]
    timer = doc.get(KEY_TIMER)
    if isinstance(timer, dict) and _LEGACY_PAUSED in timer:
        timer = dict(timer)
        paused = timer.pop(_LEGACY_PAUSED)
        if KEY_PAUSED not in doc:
            doc[KEY_PAUSED] = bool(paused)
        doc[KEY_TIMER] = timer


def repair_document(raw: dict[str, Any]) -> dict[str, Any]:
    """
    Return a wire document that satisfies every at-rest invariant.

    Rosters shorter than three entries are padded with placeholder players;
    existing entries are never dropped or reordered. Legacy and partial
    documents get their missing fields from the default document. A valid
    document comes back equal to the input.
    """
    doc = copy.deepcopy(raw)
    _migrate_legacy(doc)
    defaults = default_document().to_dict()

    for team in TEAMS:
        key = KEY_PLAYERS[team]
        players = doc.get(key)
        if not isinstance(players, list):
            players = []
        players = [_repair_player(p, i + 1) for i, p in enumerate(players)]
        doc[key] = pad_roster(players)

    timer = doc.get(KEY_TIMER)
    if not isinstance(timer, dict):
        timer = {}
    end_time = timer.get(KEY_END_TIME)
    if isinstance(end_time, bool) or not isinstance(end_time, (int, float)):
        end_time = None
    elif isinstance(end_time, float):
        end_time = int(end_time) if math.isfinite(end_time) else None
    doc[KEY_TIMER] = {KEY_END_TIME: end_time}

    if not isinstance(doc.get(KEY_PAUSED), bool):
        doc[KEY_PAUSED] = defaults[KEY_PAUSED]
    points = _whole_number(doc.get(KEY_POINTS))
    doc[KEY_POINTS] = defaults[KEY_POINTS] if points is None else points
    size = _whole_number(doc.get(KEY_ROSTER_SIZE))
    doc[KEY_ROSTER_SIZE] = size if size in ROSTER_SIZES else defaults[KEY_ROSTER_SIZE]

    if doc != raw:
        logger.debug("Repaired document fields: %s", sorted(k for k in doc if doc.get(k) != raw.get(k)))
    return doc


# ---- Mutation shaping ----
# Each helper takes the current mirror and returns the partial top-level
# fields to merge; none of them keeps state.

def _replace_player(doc: MatchDocument, team: str, index: int, **changes: Any) -> dict[str, Any]:
    roster = list(doc.roster(team))
    if not 0 <= index < len(roster):
        raise IndexError(f"Team {team} has no player #{index}")
    roster[index] = replace(roster[index], **changes)
    return {roster_field(team): tuple(roster)}


def set_player_name(doc: MatchDocument, team: str, index: int, name: str) -> dict[str, Any]:
    return _replace_player(doc, team, index, name=name)


def increment_score(doc: MatchDocument, team: str, index: int) -> dict[str, Any]:
    player = doc.roster(team)[index]
    return _replace_player(doc, team, index, score=player.score + 1)


def decrement_score(doc: MatchDocument, team: str, index: int) -> dict[str, Any]:
    player = doc.roster(team)[index]
    return _replace_player(doc, team, index, score=max(0, player.score - 1))


def zero_score(doc: MatchDocument, team: str, index: int) -> dict[str, Any]:
    return _replace_player(doc, team, index, score=0)


def reset_scores(doc: MatchDocument) -> dict[str, Any]:
    return {
        roster_field(team): tuple(replace(p, score=0) for p in doc.roster(team))
        for team in TEAMS
    }


def set_roster_size(doc: MatchDocument, size: int) -> dict[str, Any]:
    """Switch 2v2/3v3. Pads rosters upward; never removes players."""
    if size not in ROSTER_SIZES:
        raise ValueError(f"Roster size must be one of {ROSTER_SIZES}, got {size}")
    fields: dict[str, Any] = {"active_roster_size": size}
    for team in TEAMS:
        roster = list(doc.roster(team))
        while len(roster) < size:
            roster.append(Player(placeholder_name(len(roster) + 1), 0))
        fields[roster_field(team)] = tuple(roster)
    return fields


def set_points_to_win(doc: MatchDocument, points: int) -> dict[str, Any]:
    return {"points_to_win": int(points)}
