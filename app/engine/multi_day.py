"""
Test match logic: lead, follow-on, fourth-innings target and result.
"""
from dataclasses import dataclass
from typing import Optional

from app.engine.state import MatchState, TestMatchConfig

TEST_MATCH_DEFAULTS = TestMatchConfig()


def calculate_lead(state: MatchState) -> int:
    """Positive when the batting side leads, negative when it trails"""
    batting = sum(s.score for s in state.innings_scores if s.team_id == state.batting_team_id)
    bowling = sum(s.score for s in state.innings_scores if s.team_id == state.bowling_team_id)
    return batting + state.score - bowling


def can_enforce_follow_on(state: MatchState) -> bool:
    if state.innings != 2 or not state.adjustments.concluded:
        return False
    margin = (state.test_config or TEST_MATCH_DEFAULTS).follow_on_margin
    return calculate_lead(state) <= -margin


def _innings_score(state: MatchState, number: int) -> int:
    return next((s.score for s in state.innings_scores if s.innings == number), 0)


def calculate_test_target(state: MatchState) -> int:
    """(1st + 3rd) - 2nd + 1; zero before the third innings"""
    if state.innings < 3:
        return 0
    third = state.score if state.innings == 3 else _innings_score(state, 3)
    return _innings_score(state, 1) + third - _innings_score(state, 2) + 1


@dataclass
class TestMatchStatus:
    is_complete: bool
    result: Optional[str] = None
    winner_id: Optional[str] = None  # "DRAW" for a drawn match


def check_test_match_status(state: MatchState, wicket_limit: int = 10) -> TestMatchStatus:
    """
    Draw after the last day, else the fourth-innings chase result.

    wicket_limit is the all-out ceiling for the batting side, which is below
    ten when the squad is short.
    """
    config = state.test_config or TEST_MATCH_DEFAULTS

    if state.current_day > config.max_days:
        return TestMatchStatus(True, "Match Drawn", "DRAW")

    if state.innings == 4 and state.target:
        if state.score >= state.target:
            return TestMatchStatus(
                True,
                f"{state.batting_team_id} won by {wicket_limit - state.wickets} wickets",
                state.batting_team_id,
            )
        if state.wickets >= wicket_limit:
            return TestMatchStatus(
                True,
                f"{state.bowling_team_id} won by {state.target - state.score - 1} runs",
                state.bowling_team_id,
            )

    # Innings victories are not detected yet
    return TestMatchStatus(False)
