"""Tests for the match document model, repair pass and mutation shaping."""
import copy
import pytest

from shared import match
from shared.hashing import canonical_json
from shared.match import (
    MatchDocument, Player, TimerState, default_document, repair_document,
    placeholder_name, pad_roster,
)


def _players(*names):
    return [{"name": n, "score": i + 1} for i, n in enumerate(names)]


def _valid_raw():
    return {
        "playersA": _players("Ann", "Bob", "Cy"),
        "playersB": _players("Dee", "Eve", "Fay", "Gus"),
        "timer": {"endTime": 1_700_000_450_000},
        "isPaused": False,
        "pointsToWin": 30,
        "numPlayersPerTeam": 3,
    }


def test_default_document_shape():
    doc = default_document().to_dict()
    assert [p["name"] for p in doc["playersA"]] == ["Player 1 Name", "Player 2 Name", "Player 3 Name"]
    assert all(p["score"] == 0 for p in doc["playersA"] + doc["playersB"])
    assert doc["timer"] == {"endTime": None}
    assert doc["isPaused"] is True
    assert doc["pointsToWin"] == 50
    assert doc["numPlayersPerTeam"] == 2


def test_placeholder_name():
    assert placeholder_name(3) == "Player 3 Name"


@pytest.mark.parametrize("length", [0, 1, 2, 3, 5])
def test_repair_pads_short_rosters_at_the_tail(length):
    raw = _valid_raw()
    raw["playersA"] = _players(*[f"P{i}" for i in range(length)])
    repaired = repair_document(raw)
    roster = repaired["playersA"]
    assert len(roster) == max(3, length)
    assert roster[:length] == raw["playersA"]
    for i in range(length, len(roster)):
        assert roster[i] == {"name": placeholder_name(i + 1), "score": 0}


def test_repair_is_noop_on_valid_document():
    raw = _valid_raw()
    before = canonical_json(raw)
    repaired = repair_document(raw)
    assert repaired == raw
    assert canonical_json(repaired) == before
    # input untouched
    assert canonical_json(raw) == before


def test_repair_twice_equals_once():
    raw = {"playersA": _players("Solo"), "isPaused": "yes"}
    once = repair_document(raw)
    assert repair_document(once) == once


def test_repair_migrates_legacy_shape():
    legacy = {
        "players": {
            "teamA": [{"name": "Ann", "score": 4}, {"name": "Bob", "score": 1}],
            "teamB": [{"name": "Dee", "score": 2}, {"name": "Eve", "score": 0}],
        },
        "timer": {"endTime": None, "paused": True},
        "pointsToWin": 50,
        "numPlayersPerTeam": 2,
    }
    repaired = repair_document(legacy)
    assert "players" not in repaired
    assert repaired["playersA"][:2] == legacy["players"]["teamA"]
    assert repaired["playersA"][2] == {"name": "Player 3 Name", "score": 0}
    assert repaired["playersB"][1] == {"name": "Eve", "score": 0}
    assert repaired["timer"] == {"endTime": None}
    assert repaired["isPaused"] is True


def test_repair_fills_missing_fields_from_defaults():
    repaired = repair_document({})
    assert repaired == default_document().to_dict()


def test_repair_coerces_bad_players():
    raw = _valid_raw()
    raw["playersB"] = [{"name": "Neg", "score": -4}, {"score": "7"}, "junk"]
    roster = repair_document(raw)["playersB"]
    assert roster[0] == {"name": "Neg", "score": 0}
    assert roster[1] == {"name": "Player 2 Name", "score": 7}
    assert roster[2] == {"name": "Player 3 Name", "score": 0}


def test_repair_rejects_unknown_roster_size():
    raw = _valid_raw()
    raw["numPlayersPerTeam"] = 5
    assert repair_document(raw)["numPlayersPerTeam"] == 2


@pytest.mark.parametrize("size,expected", [(3.0, 3), (2.0, 2), (2.5, 2), (True, 2), ("3", 2), (None, 2)])
def test_repair_roster_size_is_always_an_int(size, expected):
    raw = _valid_raw()
    raw["numPlayersPerTeam"] = size
    repaired = repair_document(raw)
    assert repaired["numPlayersPerTeam"] == expected
    assert type(repaired["numPlayersPerTeam"]) is int
    doc = MatchDocument.from_dict(repaired)
    assert doc.team_total("A") == sum(p.score for p in doc.players_a[:expected])


def test_repair_coerces_whole_float_points_and_drops_non_finite_end_time():
    raw = _valid_raw()
    raw["pointsToWin"] = 21.0
    raw["timer"]["endTime"] = float("inf")
    raw["playersB"][0]["score"] = float("nan")
    repaired = repair_document(raw)
    assert type(repaired["pointsToWin"]) is int and repaired["pointsToWin"] == 21
    assert repaired["timer"]["endTime"] is None
    assert repaired["playersB"][0]["score"] == 0


def test_repair_keeps_stale_end_time_while_paused():
    raw = _valid_raw()
    raw["isPaused"] = True
    assert repair_document(raw)["timer"]["endTime"] == raw["timer"]["endTime"]


def test_from_dict_round_trips_repaired_document():
    raw = _valid_raw()
    doc = MatchDocument.from_dict(repair_document(raw))
    assert doc.players_b[3] == Player("Gus", 4)
    assert doc.timer == TimerState(1_700_000_450_000)
    assert doc.to_dict() == raw


def test_pad_roster_does_not_mutate_input():
    players = [{"name": "Ann", "score": 1}]
    padded = pad_roster(players)
    assert len(players) == 1
    assert len(padded) == 3


def test_decrement_never_goes_negative():
    doc = default_document()
    for _ in range(3):
        doc = doc.merged(**match.decrement_score(doc, "A", 0))
    assert doc.players_a[0].score == 0


def test_increment_and_zero_score():
    doc = default_document()
    doc = doc.merged(**match.increment_score(doc, "B", 1))
    doc = doc.merged(**match.increment_score(doc, "B", 1))
    assert doc.players_b[1].score == 2
    doc = doc.merged(**match.zero_score(doc, "B", 1))
    assert doc.players_b[1].score == 0


def test_shaping_only_touches_one_roster():
    doc = default_document()
    fields = match.set_player_name(doc, "A", 2, "Zed")
    assert set(fields) == {"players_a"}
    assert fields["players_a"][2].name == "Zed"
    assert doc.players_a[2].name == "Player 3 Name"


def test_unknown_team_and_bad_index_raise():
    doc = default_document()
    with pytest.raises(ValueError):
        match.increment_score(doc, "C", 0)
    with pytest.raises(IndexError):
        match.set_player_name(doc, "A", 7, "Nobody")


def test_switch_to_three_pads_without_touching_existing_players():
    doc = MatchDocument(
        players_a=(Player("Ann", 5), Player("Bob", 2)),
        players_b=(Player("Dee", 1), Player("Eve", 0)),
        active_roster_size=2,
    )
    doc = doc.merged(**match.set_roster_size(doc, 3))
    assert doc.active_roster_size == 3
    assert doc.players_a[:2] == (Player("Ann", 5), Player("Bob", 2))
    assert doc.players_a[2] == Player("Player 3 Name", 0)
    assert len(doc.players_b) == 3


def test_switch_to_two_keeps_third_player_in_storage():
    doc = MatchDocument(
        players_a=(Player("Ann", 5), Player("Bob", 2), Player("Cy", 9)),
        active_roster_size=3,
    )
    assert doc.team_total("A") == 16
    doc = doc.merged(**match.set_roster_size(doc, 2))
    assert doc.to_dict()["playersA"][2] == {"name": "Cy", "score": 9}
    assert doc.active_roster("A") == (Player("Ann", 5), Player("Bob", 2))
    assert doc.team_total("A") == 7


def test_invalid_roster_size_raises():
    with pytest.raises(ValueError):
        match.set_roster_size(default_document(), 4)


def test_reset_scores_keeps_names_and_lengths():
    doc = MatchDocument(players_a=(Player("Ann", 5), Player("Bob", 2), Player("Cy", 9), Player("Di", 1)))
    doc = doc.merged(**match.reset_scores(doc))
    assert [p.name for p in doc.players_a] == ["Ann", "Bob", "Cy", "Di"]
    assert all(p.score == 0 for p in doc.players_a + doc.players_b)


def test_merged_is_shallow_and_carries_other_fields():
    doc = MatchDocument(points_to_win=21, is_paused=False, timer=TimerState(123))
    merged = doc.merged(**match.set_points_to_win(doc, 40))
    assert merged.points_to_win == 40
    assert merged.timer == TimerState(123)
    assert merged.is_paused is False
    assert merged.players_a is doc.players_a


def test_is_running_requires_end_time():
    assert not MatchDocument(is_paused=False).is_running
    assert MatchDocument(is_paused=False, timer=TimerState(1)).is_running
    assert not MatchDocument(is_paused=True, timer=TimerState(1)).is_running


def test_document_is_immutable():
    doc = default_document()
    with pytest.raises(Exception):
        doc.points_to_win = 3
    raw = copy.deepcopy(doc.to_dict())
    raw["playersA"][0]["score"] = 99
    assert doc.players_a[0].score == 0
