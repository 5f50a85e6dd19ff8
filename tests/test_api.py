"""
API tests against the FastAPI app with a throwaway SQLite file
"""
import pytest
from fastapi.testclient import TestClient

from main import app
from app.api.match import active_matches
from conftest import make_team


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as c:
        yield c


def create_match(client, **overrides):
    body = {
        "team1": make_team("A", "Ashford").model_dump(),
        "team2": make_team("B", "Brookvale").model_dump(),
        "match_format": "T20",
    }
    body.update(overrides)
    response = client.post("/api/matches", json=body)
    assert response.status_code == 200, response.text
    return response.json()["match_id"]


def open_innings(client, match_id):
    client.post(f"/api/matches/{match_id}/batters", json={"player_id": "a1"})
    client.post(f"/api/matches/{match_id}/batters", json={"player_id": "a2", "role": "non_striker"})
    response = client.post(f"/api/matches/{match_id}/bowlers", json={"bowler_id": "b1"})
    assert response.status_code == 200, response.text
    return response.json()["state"]


class TestMatchLifecycle:
    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "healthy"}

    def test_create_match(self, client):
        response = client.post(
            "/api/matches",
            json={
                "team1": make_team("A", "Ashford").model_dump(),
                "team2": make_team("B", "Brookvale").model_dump(),
                "batting_first_id": "B",
                "toss_winner_id": "B",
                "toss_decision": "bat",
                "umpires": ["Erasmus", "Illingworth"],
            },
        )
        assert response.status_code == 200
        payload = response.json()

        assert payload["batting_team"]["id"] == "B"
        assert payload["bowling_team"]["id"] == "A"
        assert payload["state"]["umpires"] == ["Erasmus", "Illingworth"]
        assert payload["state"]["test_config"] is None

    def test_duplicate_id_rejected(self, client):
        match_id = create_match(client)
        body = {
            "id": match_id,
            "team1": make_team("A", "Ashford").model_dump(),
            "team2": make_team("B", "Brookvale").model_dump(),
        }
        assert client.post("/api/matches", json=body).status_code == 400

    def test_same_team_twice_rejected(self, client):
        team = make_team("A", "Ashford").model_dump()
        assert client.post("/api/matches", json={"team1": team, "team2": team}).status_code == 400

    def test_unknown_match(self, client):
        assert client.get("/api/matches/does-not-exist/state").status_code == 404

    def test_restore_from_snapshot(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 4})

        del active_matches[match_id]
        state = client.get(f"/api/matches/{match_id}/state").json()["state"]

        assert match_id in active_matches
        assert state["score"] == 4
        assert state["striker_id"] == "a1"

    def test_restore_keeps_short_squad_limit(self, client):
        match_id = create_match(
            client,
            team1=make_team("S", "Shorthill", size=5).model_dump(),
            team2=make_team("T", "Tarrant").model_dump(),
        )
        del active_matches[match_id]
        client.get(f"/api/matches/{match_id}/state")

        assert active_matches[match_id].engine.rules.squad_size == 5
        assert active_matches[match_id].engine.rules.wicket_limit() == 4


class TestScoring:
    def test_delivery_and_undo(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)

        state = client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 1}).json()["state"]
        assert state["score"] == 1
        assert state["striker_id"] == "a2"
        assert state["overs_display"] == "0.1"

        state = client.post(f"/api/matches/{match_id}/undo").json()["state"]
        assert state["score"] == 0
        assert state["striker_id"] == "a1"

    def test_wicket(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)

        response = client.post(
            f"/api/matches/{match_id}/wickets",
            json={"wicket_type": "caught", "dismissed_id": "a1", "fielder_id": "b4"},
        )
        state = response.json()["state"]
        assert state["wickets"] == 1
        assert state["striker_id"] is None
        assert state["history"][-1]["commentary"] == "WICKET! Caught"

    def test_wicket_needs_type(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        response = client.post(f"/api/matches/{match_id}/deliveries", json={"is_wicket": True})
        assert response.status_code == 400

    def test_malformed_delivery(self, client):
        match_id = create_match(client)
        response = client.post(f"/api/matches/{match_id}/deliveries", json={"extra_type": "beamer"})
        assert response.status_code == 400

    def test_edit_ball(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        for runs in (1, 1, 4):
            state = client.post(f"/api/matches/{match_id}/deliveries", json={"runs": runs}).json()["state"]
        middle = state["history"][-2]["timestamp"]

        state = client.post(
            f"/api/matches/{match_id}/edit-ball", json={"timestamp": middle, "runs": 6}
        ).json()["state"]
        assert state["score"] == 11

        card = client.get(f"/api/matches/{match_id}/batting-card").json()
        assert {r["player_id"]: r["runs"] for r in card["rows"]} == {"a1": 1, "a2": 10}

    def test_edit_unknown_ball_changes_nothing(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        before = client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 2}).json()["state"]
        after = client.post(f"/api/matches/{match_id}/edit-ball", json={"timestamp": 1, "runs": 6}).json()["state"]
        assert after["score"] == before["score"] == 2

    def test_correct_identity(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 0})

        state = client.post(
            f"/api/matches/{match_id}/correct-identity",
            json={"old_id": "b1", "new_id": "b8", "role": "bowler"},
        ).json()["state"]
        assert state["bowler_id"] == "b8"
        assert state["history"][-1]["bowler_id"] == "b8"

    def test_player_must_be_in_team(self, client):
        match_id = create_match(client)
        response = client.post(f"/api/matches/{match_id}/batters", json={"player_id": "b1"})
        assert response.status_code == 400
        response = client.post(f"/api/matches/{match_id}/bowlers", json={"bowler_id": "a1"})
        assert response.status_code == 400

    def test_retire(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        state = client.post(f"/api/matches/{match_id}/retire", json={"player_id": "a1"}).json()["state"]
        assert state["wickets"] == 0
        assert state["striker_id"] is None

        response = client.post(f"/api/matches/{match_id}/retire", json={"player_id": "a2", "reason": "bowled"})
        assert response.status_code == 400

    def test_bowler_replacement(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        state = client.post(f"/api/matches/{match_id}/bowler-replacement", json={"bowler_id": "b9"}).json()["state"]
        assert state["bowler_id"] == "b9"
        assert state["history"][-1]["kind"] == "bowler_change"


class TestReadModels:
    def play_over(self, client, match_id):
        for runs in (0, 4, 1, 0, 6, 0):
            client.post(f"/api/matches/{match_id}/deliveries", json={"runs": runs})

    def test_cards(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        self.play_over(client, match_id)

        card = client.get(f"/api/matches/{match_id}/batting-card").json()
        assert card["total_display"] == "11/0"
        assert card["overs"] == "1.0"
        assert len(card["did_not_bat"]) == 9

        bowling = client.get(f"/api/matches/{match_id}/bowling-card").json()
        assert bowling[0]["player_id"] == "b1"
        assert bowling[0]["runs"] == 11
        assert bowling[0]["economy"] == 11.0

    def test_unknown_innings(self, client):
        match_id = create_match(client)
        assert client.get(f"/api/matches/{match_id}/batting-card", params={"innings": 3}).status_code == 404

    def test_timeline_latest_first(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        self.play_over(client, match_id)

        timeline = client.get(f"/api/matches/{match_id}/timeline").json()
        assert [b["label"] for b in timeline][:2] == ["•", "6"]
        assert timeline[0]["display_over"] == "0.6"

    def test_live_and_availability(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        self.play_over(client, match_id)

        live = client.get(f"/api/matches/{match_id}/live").json()
        assert live["score"] == 11
        assert live["balls_remaining"] == 114
        assert live["end_of_innings"] is None

        availability = client.get(f"/api/matches/{match_id}/bowlers/b1/availability").json()
        assert availability["reason"] == "Consecutive Over"
        assert not availability["allowed"]

    def test_mvp(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        self.play_over(client, match_id)

        ranking = client.get(f"/api/matches/{match_id}/mvp").json()
        assert len(ranking) == 22
        assert ranking[0]["points"] >= ranking[-1]["points"]

    def test_mirror_matches_state(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        state = client.get(f"/api/matches/{match_id}/state").json()
        assert client.get(f"/api/matches/{match_id}/mirror").json() == state


class TestInningsFlow:
    def test_declare_and_second_innings(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 6})
        client.post(f"/api/matches/{match_id}/declare")

        status = client.get(f"/api/matches/{match_id}/status").json()
        assert status["end_of_innings"] == "Declared"

        client.post(f"/api/matches/{match_id}/innings/end", json={})
        payload = client.post(
            f"/api/matches/{match_id}/innings/start",
            json={"batting_team_id": "B", "bowling_team_id": "A", "target": 7},
        ).json()

        assert payload["batting_team"]["id"] == "B"
        assert payload["state"]["innings"] == 2
        assert payload["state"]["target"] == 7
        assert payload["state"]["innings_scores"][0]["score"] == 6

        first = client.get(f"/api/matches/{match_id}/batting-card", params={"innings": 1}).json()
        assert first["total"] == 6

    def test_start_innings_needs_match_teams(self, client):
        match_id = create_match(client)
        response = client.post(
            f"/api/matches/{match_id}/innings/start",
            json={"batting_team_id": "B", "bowling_team_id": "Z"},
        )
        assert response.status_code == 400

    def test_metadata(self, client):
        match_id = create_match(client)
        state = client.post(
            f"/api/matches/{match_id}/metadata", json={"overs_lost": 4, "umpires": ["Tucker"]}
        ).json()["state"]
        assert state["adjustments"]["overs_lost"] == 4
        assert state["umpires"] == ["Tucker"]

        live = client.get(f"/api/matches/{match_id}/live").json()
        assert live["balls_remaining"] == 96

        assert client.post(f"/api/matches/{match_id}/metadata", json={}).status_code == 400

    def test_metadata_crease_survives_edit(self, client):
        match_id = create_match(client)
        client.post(f"/api/matches/{match_id}/metadata", json={"striker_id": "a1", "non_striker_id": "a2"})
        client.post(f"/api/matches/{match_id}/bowlers", json={"bowler_id": "b1"})
        client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 1})
        history = client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 0}).json()["state"]["history"]

        state = client.post(
            f"/api/matches/{match_id}/edit-ball", json={"timestamp": history[-2]["timestamp"], "runs": 2}
        ).json()["state"]
        assert [e["striker_id"] for e in state["history"][-2:]] == ["a1", "a1"]
        assert (state["striker_id"], state["non_striker_id"], state["bowler_id"]) == ("a1", "a2", "b1")

    def test_timer(self, client):
        match_id = create_match(client)
        open_innings(client, match_id)
        client.post(f"/api/matches/{match_id}/deliveries", json={"runs": 0})

        state = client.post(f"/api/matches/{match_id}/timer/pause").json()["state"]
        assert state["timer"]["is_paused"]
        state = client.post(f"/api/matches/{match_id}/timer/resume").json()["state"]
        assert not state["timer"]["is_paused"]


class TestTestMatch:
    def test_defaults_and_new_day(self, client):
        match_id = create_match(client, match_format="Test")
        state = client.get(f"/api/matches/{match_id}/state").json()["state"]
        assert state["test_config"]["follow_on_margin"] == 200

        state = client.post(f"/api/matches/{match_id}/new-day").json()["state"]
        assert state["current_day"] == 2
        assert state["adjustments"]["session"] == "Morning"

    def test_follow_on_refused_when_not_eligible(self, client):
        match_id = create_match(client, match_format="Test")
        assert client.post(f"/api/matches/{match_id}/follow-on").status_code == 400

        status = client.get(f"/api/matches/{match_id}/status").json()
        assert not status["can_enforce_follow_on"]
        assert not status["is_complete"]

    def test_draw_after_last_day(self, client):
        match_id = create_match(client, match_format="Test", test_config={"max_days": 2})
        client.post(f"/api/matches/{match_id}/new-day")
        client.post(f"/api/matches/{match_id}/new-day")

        status = client.get(f"/api/matches/{match_id}/status").json()
        assert status["is_complete"]
        assert status["result"] == "Match Drawn"
        assert status["winner_id"] == "DRAW"
