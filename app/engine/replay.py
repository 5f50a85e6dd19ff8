"""
Replay-based correction.

The log is the source of truth, so an edited ball is fixed by patching the
recorded fact and re-running the pipeline over the innings. Derived fields
(over/ball, score_at_ball, bowler credit, synthesized commentary) are always
recomputed rather than copied from the old event.
"""
import logging
from dataclasses import replace
from typing import Iterable, Optional

from app.engine.deliveries import apply_delivery, counts_toward_over
from app.engine.dismissals import counts_as_team_wicket
from app.engine.state import BallEvent, CreaseRole, EventKind, MatchState

logger = logging.getLogger(__name__)

_ROLE_FIELDS = {
    CreaseRole.STRIKER: "striker_id",
    CreaseRole.NON_STRIKER: "non_striker_id",
    CreaseRole.BOWLER: "bowler_id",
}


def fold_innings(events: Iterable[BallEvent]) -> tuple[int, int, int]:
    """Re-derive (score, wickets, legal balls) from one innings' events"""
    score = wickets = balls = 0
    for event in events:
        if event.is_wicket and counts_as_team_wicket(event.wicket_type):
            if not event.is_marker or event.kind == EventKind.RETIREMENT:
                wickets += 1
        if event.is_marker:
            continue
        score += event.total_runs
        if counts_toward_over(event.to_delivery()):
            balls += 1
    return score, wickets, balls


def _seed_from(state: MatchState, first: BallEvent) -> MatchState:
    return replace(
        state,
        score=0,
        wickets=0,
        total_balls=0,
        striker_id=first.prior_striker_id,
        non_striker_id=first.prior_non_striker_id,
        bowler_id=first.prior_bowler_id,
    )


def _replay(state: MatchState, events: list[BallEvent]) -> MatchState:
    for event in events:
        state = apply_delivery(state, event.to_delivery(), now=event.timestamp)
    return state


def rebuild(events: Iterable[BallEvent], base: Optional[MatchState] = None) -> MatchState:
    """
    Deterministically replay a whole log from an empty state.

    Each innings is seeded from the crease recorded before its first event.
    Closed-innings records are not reconstructed; they are controller state,
    not ball facts.
    """
    state = base or MatchState()
    state = replace(state, history=())
    current = None
    for event in events:
        if event.innings != current:
            current = event.innings
            state = _seed_from(replace(state, innings=current), event)
        state = apply_delivery(state, event.to_delivery(), now=event.timestamp)
    return state


def edit_ball(
    state: MatchState,
    timestamp: int,
    patch: dict,
    now: Optional[int] = None,
) -> MatchState:
    """
    Patch one delivery of the live innings and replay the innings.

    An unknown timestamp leaves the state untouched. Events from other
    innings are kept as they are.
    """
    events = state.innings_events()
    index = next((i for i, e in enumerate(events) if e.timestamp == timestamp), None)
    if index is None:
        logger.warning("edit_ball: no event at %s in innings %s", timestamp, state.innings)
        return state

    patch = dict(patch)
    if "commentary" in patch:
        patch.setdefault("custom_commentary", patch["commentary"] is not None)
        if patch["commentary"] is None:
            patch["commentary"] = ""
    events[index] = replace(events[index], **patch)

    others = tuple(e for e in state.history if e.innings != state.innings)
    seeded = replace(_seed_from(state, events[0]), history=others)
    rebuilt = _replay(seeded, events)

    logger.debug(
        "Replayed innings %s after edit: %s/%s", state.innings, rebuilt.score, rebuilt.wickets
    )
    return rebuilt


def correct_identity(
    state: MatchState,
    old_id: str,
    new_id: str,
    role: CreaseRole,
) -> MatchState:
    """Swap a wrongly recorded player for the right one; no rescoring"""
    field_name = _ROLE_FIELDS[role]
    changes = {}
    if getattr(state, field_name) == old_id:
        changes[field_name] = new_id

    history = []
    for event in state.history:
        fixes = {}
        for name in (field_name, f"prior_{field_name}"):
            if getattr(event, name) == old_id:
                fixes[name] = new_id
        if event.dismissed_id == old_id:
            fixes["dismissed_id"] = new_id
        history.append(replace(event, **fixes) if fixes else event)

    return replace(state, history=tuple(history), **changes)
