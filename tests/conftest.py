"""
Shared fixtures for engine, scorecard and API tests
"""
import os
import tempfile

# Point the snapshot store at a throwaway file before the app is imported
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(), "test_scorebook.db"))

import pytest

from app.api.schemas import PlayerSchema, TeamRosterSchema
from app.engine.match_engine import MatchEngine
from app.engine.rules import MatchFormat, MatchRules
from app.engine.state import CreaseRole, MatchState


def make_team(team_id: str, name: str, size: int = 11) -> TeamRosterSchema:
    """Roster with ids like 'a1'..'a11'"""
    prefix = team_id.lower()
    return TeamRosterSchema(
        id=team_id,
        name=name,
        short_name=team_id,
        players=[PlayerSchema(id=f"{prefix}{i}", name=f"{name} {i}") for i in range(1, size + 1)],
    )


@pytest.fixture
def team_a():
    return make_team("A", "Ashford")


@pytest.fixture
def team_b():
    return make_team("B", "Brookvale")


@pytest.fixture
def opened_state():
    """First innings with a1/a2 at the crease and b1 bowling"""
    return MatchState(
        batting_team_id="A",
        bowling_team_id="B",
        striker_id="a1",
        non_striker_id="a2",
        bowler_id="b1",
    )


@pytest.fixture
def engine(opened_state):
    return MatchEngine(opened_state, MatchRules(MatchFormat.T20))


@pytest.fixture
def multi_day_engine():
    """Test match engine with openers and bowler assigned via markers"""
    engine = MatchEngine.new_match("A", "B", rules=MatchRules(MatchFormat.TEST))
    engine.assign_batter("a1")
    engine.assign_batter("a2", role=CreaseRole.NON_STRIKER)
    engine.assign_bowler("b1")
    return engine