"""
Live innings numbers for the scoreboard
"""
from dataclasses import dataclass
from typing import Optional

from app.engine.rules import MatchRules
from app.engine.state import MatchState
from app.engine.timer import OverRateStatus, check_over_rate


@dataclass
class LiveStats:
    score: int
    wickets: int
    overs: str
    run_rate: float
    required_rate: Optional[float]
    balls_remaining: Optional[int]
    runs_needed: Optional[int]
    over_rate: OverRateStatus


def run_rate(score: int, balls: int) -> float:
    if balls == 0:
        return 0.0
    return round(score / balls * 6, 2)


def live_stats(
    state: MatchState,
    rules: MatchRules,
    overs_per_hour: float = 14.11,
    now: Optional[int] = None,
) -> LiveStats:
    balls_remaining = None
    if not rules.is_test:
        balls_remaining = max(0, rules.overs_allowed(state) * 6 - state.total_balls)

    required_rate = None
    runs_needed = None
    if state.target is not None and not rules.is_test:
        runs_needed = max(0, state.target - state.score)
        if balls_remaining:
            required_rate = round(runs_needed / balls_remaining * 6, 2)
        else:
            required_rate = 0.0

    return LiveStats(
        score=state.score,
        wickets=state.wickets,
        overs=state.overs_display,
        run_rate=run_rate(state.score, state.total_balls),
        required_rate=required_rate,
        balls_remaining=balls_remaining,
        runs_needed=runs_needed,
        over_rate=check_over_rate(state, overs_per_hour, now),
    )
