"""
Innings timer and over-rate check.
Informational only; nothing in the scoring math depends on it.
"""
import time
from dataclasses import dataclass, replace
from typing import Optional

from app.engine.state import MatchState, MatchTimer


def now_ms() -> int:
    return int(time.time() * 1000)


def start_innings_timer(state: MatchState, now: Optional[int] = None) -> MatchState:
    """Start the timer on the first real delivery (idempotent)"""
    if state.timer.start_time:
        return state
    started = replace(state.timer, start_time=now or now_ms(), is_paused=False)
    return replace(state, timer=started)


def pause_innings_timer(state: MatchState, now: Optional[int] = None) -> MatchState:
    if state.timer.is_paused:
        return state
    paused = replace(state.timer, is_paused=True, last_pause_time=now or now_ms())
    return replace(state, timer=paused)


def resume_innings_timer(state: MatchState, now: Optional[int] = None) -> MatchState:
    """Resume and credit the stoppage back as an allowance"""
    timer = state.timer
    if not timer.is_paused:
        return state
    downtime = 0
    if timer.last_pause_time is not None:
        downtime = max(0, (now or now_ms()) - timer.last_pause_time)
    resumed = replace(
        timer,
        is_paused=False,
        last_pause_time=None,
        total_allowances=timer.total_allowances + downtime,
    )
    return replace(state, timer=resumed)


def reset_innings_timer(state: MatchState) -> MatchState:
    return replace(state, timer=MatchTimer())


@dataclass
class OverRateStatus:
    elapsed_seconds: int
    actual_overs: float
    expected_overs: float
    behind_rate: bool


def check_over_rate(
    state: MatchState,
    overs_per_hour: float = 14.11,
    now: Optional[int] = None,
) -> OverRateStatus:
    """
    Compare overs bowled against the expected rate.

    Flagged as behind only after two overs, with half an over of grace.
    """
    timer = state.timer
    elapsed_ms = 0
    if timer.start_time:
        end = timer.last_pause_time if timer.is_paused and timer.last_pause_time else (now or now_ms())
        elapsed_ms = max(0, end - timer.start_time - timer.total_allowances)

    elapsed_seconds = elapsed_ms // 1000
    seconds_per_over = 3600 / overs_per_hour
    actual_overs = state.total_balls / 6
    expected_overs = elapsed_seconds / seconds_per_over

    return OverRateStatus(
        elapsed_seconds=elapsed_seconds,
        actual_overs=actual_overs,
        expected_overs=expected_overs,
        behind_rate=actual_overs < expected_overs - 0.5 and state.total_balls > 12,
    )
