"""
Delivery pipeline.

Small sub-engines each own one slice of a state change (over, batter,
bowler, timer); apply_delivery composes them in a fixed order and appends
the fully-populated BallEvent to the log.
"""
import logging
from dataclasses import replace
from typing import Optional

from app.engine.dismissals import ball_was_faced, counts_as_team_wicket, credits_bowler
from app.engine.state import (
    BallEvent, CreaseRole, Delivery, EventKind, ExtraType, MatchState, is_legal_ball,
)
from app.engine.timer import now_ms, start_innings_timer

logger = logging.getLogger(__name__)

MARKER_COMMENTARY = {
    EventKind.IDENTITY: "New batter selected",
    EventKind.RETIREMENT: "Retirement",
    EventKind.BOWLER_CHANGE: "Injury Replacement (Bowler)",
}


# ---------------------------------------------------------------------------
# Over engine: score, ball count, strike rotation
# ---------------------------------------------------------------------------

def is_over_complete(balls: int) -> bool:
    return balls > 0 and balls % 6 == 0


def counts_toward_over(delivery: Delivery) -> bool:
    """Legal ball, and not a dismissal that happens without a ball faced"""
    if not is_legal_ball(delivery.extra_type):
        return False
    if delivery.is_wicket and not ball_was_faced(delivery.wicket_type):
        return False
    return True


def penalty_runs(extra_type: ExtraType) -> int:
    return 1 if extra_type in (ExtraType.WIDE, ExtraType.NO_BALL) else 0


def physical_runs(delivery: Delivery) -> int:
    # The one-run wide/no-ball penalty is never "run", so it never rotates strike
    if delivery.extra_type == ExtraType.NONE:
        return delivery.runs
    return delivery.runs + delivery.extra_runs


def apply_delivery_to_over(state: MatchState, delivery: Delivery) -> MatchState:
    next_score = state.score + delivery.runs + delivery.extra_runs + penalty_runs(delivery.extra_type)
    counted = counts_toward_over(delivery)
    next_balls = state.total_balls + 1 if counted else state.total_balls

    striker, non_striker = state.striker_id, state.non_striker_id

    if physical_runs(delivery) % 2 != 0:
        striker, non_striker = non_striker, striker

    # End of over swap
    if counted and is_over_complete(next_balls) and not delivery.is_wicket:
        striker, non_striker = non_striker, striker

    return replace(
        state,
        score=next_score,
        total_balls=next_balls,
        striker_id=striker,
        non_striker_id=non_striker,
    )


# ---------------------------------------------------------------------------
# Batter engine: dismissals and new batters
# ---------------------------------------------------------------------------

def remove_batter(state: MatchState, player_id: str) -> MatchState:
    """Clear a player from whichever crease slot holds them"""
    if state.striker_id == player_id:
        return replace(state, striker_id=None)
    if state.non_striker_id == player_id:
        return replace(state, non_striker_id=None)
    return state


def handle_wicket(state: MatchState, delivery: Delivery) -> MatchState:
    if counts_as_team_wicket(delivery.wicket_type):
        state = replace(state, wickets=state.wickets + 1)
    if delivery.dismissed_id:
        state = remove_batter(state, delivery.dismissed_id)
    return state


def assign_new_batter(state: MatchState, player_id: str, role: CreaseRole) -> MatchState:
    if role == CreaseRole.STRIKER:
        other = None if state.non_striker_id == player_id else state.non_striker_id
        return replace(state, striker_id=player_id, non_striker_id=other)
    other = None if state.striker_id == player_id else state.striker_id
    return replace(state, striker_id=other, non_striker_id=player_id)


# ---------------------------------------------------------------------------
# Bowler engine
# ---------------------------------------------------------------------------

def assign_bowler(state: MatchState, bowler_id: str) -> MatchState:
    return replace(state, bowler_id=bowler_id)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def describe_delivery(delivery: Delivery) -> str:
    if delivery.is_wicket:
        label = delivery.wicket_type.label if delivery.wicket_type else "Out"
        return f"WICKET! {label}"
    total = delivery.runs + delivery.extra_runs + penalty_runs(delivery.extra_type)
    if delivery.extra_type == ExtraType.NONE:
        return f"{total} runs"
    return f"{total} runs ({delivery.extra_type.label})"


def _next_timestamp(state: MatchState, delivery: Delivery, now: Optional[int]) -> int:
    if delivery.timestamp is not None:
        return delivery.timestamp
    return max(now or now_ms(), state.last_timestamp + 1)


def _apply_marker(state: MatchState, delivery: Delivery, now: Optional[int]) -> MatchState:
    """Identity/retirement markers: no score or ball effects"""
    before = state
    if delivery.striker_id:
        state = assign_new_batter(state, delivery.striker_id, CreaseRole.STRIKER)
    if delivery.non_striker_id:
        state = assign_new_batter(state, delivery.non_striker_id, CreaseRole.NON_STRIKER)
    if delivery.bowler_id:
        state = assign_bowler(state, delivery.bowler_id)

    if delivery.kind == EventKind.RETIREMENT and delivery.dismissed_id:
        # Retired out costs the side a wicket, retired hurt does not
        if delivery.is_wicket and counts_as_team_wicket(delivery.wicket_type):
            state = replace(state, wickets=state.wickets + 1)
        state = remove_batter(state, delivery.dismissed_id)

    commentary = delivery.commentary
    if commentary is None and delivery.kind == EventKind.RETIREMENT and delivery.wicket_type:
        commentary = delivery.wicket_type.label
    marker = BallEvent(
        timestamp=_next_timestamp(state, delivery, now),
        innings=state.innings,
        over=state.total_balls // 6,
        ball=state.total_balls % 6,
        striker_id=delivery.striker_id,
        non_striker_id=delivery.non_striker_id,
        bowler_id=delivery.bowler_id,
        kind=delivery.kind,
        is_wicket=delivery.is_wicket,
        wicket_type=delivery.wicket_type,
        dismissed_id=delivery.dismissed_id,
        score_at_ball=state.score,
        commentary=commentary or MARKER_COMMENTARY[delivery.kind],
        custom_commentary=delivery.commentary is not None,
        prior_striker_id=before.striker_id,
        prior_non_striker_id=before.non_striker_id,
        prior_bowler_id=before.bowler_id,
    )
    logger.debug("Marker %s at %s", delivery.kind.value, marker.over_ball)
    return replace(state, history=state.history + (marker,))


def apply_delivery(state: MatchState, delivery: Delivery, now: Optional[int] = None) -> MatchState:
    """
    Apply one partial event and return the new state.

    Order: marker short-circuit, timer, over engine, batter engine, then
    materialize the event against the identities that were at the crease
    before the ball.
    """
    if delivery.is_marker:
        return _apply_marker(state, delivery, now)

    before = state
    state = start_innings_timer(state, now)
    state = apply_delivery_to_over(state, delivery)

    if delivery.is_wicket:
        state = handle_wicket(state, delivery)

    # Ball 6 belongs to the over it completes; an uncounted ball to the next slot
    raw_ball = state.total_balls if counts_toward_over(delivery) else state.total_balls + 1
    ball_number = raw_ball % 6 or 6
    over_number = (raw_ball - 1) // 6

    event = BallEvent(
        timestamp=_next_timestamp(before, delivery, now),
        innings=state.innings,
        over=over_number,
        ball=ball_number,
        striker_id=before.striker_id,
        non_striker_id=before.non_striker_id,
        bowler_id=state.bowler_id,
        kind=EventKind.DELIVERY,
        runs=delivery.runs,
        extra_runs=delivery.extra_runs,
        extra_type=delivery.extra_type,
        is_wicket=delivery.is_wicket,
        wicket_type=delivery.wicket_type,
        dismissed_id=delivery.dismissed_id,
        fielder_id=delivery.fielder_id,
        assist_fielder_id=delivery.assist_fielder_id,
        credit_bowler=delivery.is_wicket and credits_bowler(delivery.wicket_type),
        score_at_ball=state.score,
        commentary=delivery.commentary if delivery.commentary is not None else describe_delivery(delivery),
        custom_commentary=delivery.commentary is not None,
        pitch_coords=delivery.pitch_coords,
        shot_coords=delivery.shot_coords,
        prior_striker_id=before.striker_id,
        prior_non_striker_id=before.non_striker_id,
        prior_bowler_id=before.bowler_id,
    )
    return replace(state, history=state.history + (event,))
