"""
Match engine controller.

Owns the live MatchState, an undo stack of prior snapshots, and the
listeners that mirror every new snapshot outwards. Every mutating command
pushes the current state before replacing it, so undo is always a strict
inverse of the last command.
"""
import logging
from dataclasses import replace
from typing import Callable, Optional

from app.engine import multi_day, replay
from app.engine.deliveries import apply_delivery
from app.engine.dismissals import DismissalType, counts_as_team_wicket
from app.engine.rules import BowlerAvailability, EndReason, MatchRules
from app.engine.state import (
    CreaseRole, Delivery, EventKind, InningsScore, MatchState, TestMatchConfig, get_over_string,
)
from app.engine.timer import pause_innings_timer, reset_innings_timer, resume_innings_timer

logger = logging.getLogger(__name__)

Listener = Callable[[MatchState], None]

CREASE_FIELDS = ("striker_id", "non_striker_id", "bowler_id")


class MatchEngine:
    """Command surface over a single match"""

    def __init__(self, state: Optional[MatchState] = None, rules: Optional[MatchRules] = None):
        self.rules = rules or MatchRules()
        self.state = state or MatchState()
        self._undo_stack: list[MatchState] = []
        self._listeners: list[Listener] = []

    @classmethod
    def new_match(
        cls,
        batting_team_id: str,
        bowling_team_id: str,
        rules: Optional[MatchRules] = None,
        test_config: Optional[TestMatchConfig] = None,
        **metadata,
    ) -> "MatchEngine":
        rules = rules or MatchRules()
        if rules.is_test and test_config is None:
            test_config = multi_day.TEST_MATCH_DEFAULTS
        state = MatchState(
            batting_team_id=batting_team_id,
            bowling_team_id=bowling_team_id,
            test_config=test_config,
            **metadata,
        )
        return cls(state, rules)

    # ------------------------------------------------------------------
    # Listeners and bookkeeping
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception:
                logger.exception("Snapshot listener failed")

    def _commit(self, next_state: MatchState, command: str) -> MatchState:
        self._undo_stack.append(self.state)
        self.state = next_state
        logger.debug(
            "%s -> %s/%s (%s)", command, next_state.score, next_state.wickets, next_state.overs_display
        )
        self._notify()
        return next_state

    @property
    def is_test(self) -> bool:
        return self.state.test_config is not None

    @property
    def can_undo(self) -> bool:
        return bool(self._undo_stack)

    def _with_test_metadata(self, previous: MatchState, current: MatchState) -> MatchState:
        if not self.is_test:
            return current
        overs_today = current.overs_today
        if current.total_balls // 6 > previous.total_balls // 6:
            overs_today += 1
        return replace(current, lead=multi_day.calculate_lead(current), overs_today=overs_today)

    # ------------------------------------------------------------------
    # Ball commands
    # ------------------------------------------------------------------

    def _is_all_out(self, delivery: Delivery) -> bool:
        if not delivery.is_wicket or not counts_as_team_wicket(delivery.wicket_type):
            return False
        return self.state.wickets >= self.rules.wicket_limit()

    def apply_delivery(self, delivery: Delivery, now: Optional[int] = None) -> MatchState:
        if self._is_all_out(delivery):
            logger.warning(
                "Wicket refused: %s already all out at %s/%s",
                self.state.batting_team_id, self.state.score, self.state.wickets,
            )
            return self.state
        next_state = apply_delivery(self.state, delivery, now)
        if not delivery.is_marker:
            next_state = self._with_test_metadata(self.state, next_state)
        return self._commit(next_state, "apply_delivery")

    def record_wicket(
        self,
        wicket_type: DismissalType,
        dismissed_id: str,
        fielder_id: Optional[str] = None,
        assist_fielder_id: Optional[str] = None,
        runs: int = 0,
        now: Optional[int] = None,
    ) -> MatchState:
        return self.apply_delivery(
            Delivery(
                runs=runs,
                is_wicket=True,
                wicket_type=wicket_type,
                dismissed_id=dismissed_id,
                fielder_id=fielder_id,
                assist_fielder_id=assist_fielder_id,
            ),
            now,
        )

    def undo(self) -> MatchState:
        if not self._undo_stack:
            return self.state
        self.state = self._undo_stack.pop()
        logger.debug("undo -> %s/%s", self.state.score, self.state.wickets)
        self._notify()
        return self.state

    def edit_ball(self, timestamp: int, patch: dict) -> MatchState:
        next_state = replay.edit_ball(self.state, timestamp, patch)
        if self.is_test:
            next_state = replace(next_state, lead=multi_day.calculate_lead(next_state))
        return self._commit(next_state, "edit_ball")

    def correct_identity(self, old_id: str, new_id: str, role: CreaseRole) -> MatchState:
        return self._commit(replay.correct_identity(self.state, old_id, new_id, role), "correct_identity")

    # ------------------------------------------------------------------
    # Marker commands
    # ------------------------------------------------------------------

    def assign_batter(self, player_id: str, role: CreaseRole = CreaseRole.STRIKER) -> MatchState:
        if role == CreaseRole.NON_STRIKER:
            delivery = Delivery(kind=EventKind.IDENTITY, non_striker_id=player_id)
        else:
            delivery = Delivery(kind=EventKind.IDENTITY, striker_id=player_id)
        return self.apply_delivery(delivery)

    def assign_bowler(self, bowler_id: str) -> MatchState:
        return self.apply_delivery(
            Delivery(kind=EventKind.IDENTITY, bowler_id=bowler_id, commentary="New bowler")
        )

    def retire_batter(self, player_id: str, reason: DismissalType = DismissalType.RETIRED_HURT) -> MatchState:
        return self.apply_delivery(
            Delivery(
                kind=EventKind.RETIREMENT,
                is_wicket=reason == DismissalType.RETIRED_OUT,
                wicket_type=reason,
                dismissed_id=player_id,
            )
        )

    def replace_bowler_mid_over(self, bowler_id: str) -> MatchState:
        return self.apply_delivery(Delivery(kind=EventKind.BOWLER_CHANGE, bowler_id=bowler_id))

    # ------------------------------------------------------------------
    # Innings lifecycle
    # ------------------------------------------------------------------

    def declare_innings(self) -> MatchState:
        adjustments = replace(self.state.adjustments, declared=True)
        return self._commit(replace(self.state, adjustments=adjustments), "declare_innings")

    def conclude_innings(self) -> MatchState:
        adjustments = replace(self.state.adjustments, concluded=True)
        return self._commit(replace(self.state, adjustments=adjustments), "conclude_innings")

    def end_innings(self, complete_match: bool = False) -> MatchState:
        state = self.state
        record = InningsScore(
            innings=state.innings,
            team_id=state.batting_team_id,
            score=state.score,
            wickets=state.wickets,
            overs=get_over_string(state.total_balls),
        )
        logger.info(
            "Innings %s closed: %s %s/%s (%s)",
            record.innings, record.team_id, record.score, record.wickets, record.overs,
        )
        next_state = replace(
            state,
            innings_scores=state.innings_scores + (record,),
            is_completed=complete_match or state.is_completed,
        )
        return self._commit(next_state, "end_innings")

    def _fresh_innings(
        self,
        innings: int,
        batting_team_id: str,
        bowling_team_id: str,
        **changes,
    ) -> MatchState:
        adjustments = replace(self.state.adjustments, declared=False, concluded=False)
        state = replace(
            self.state,
            innings=innings,
            batting_team_id=batting_team_id,
            bowling_team_id=bowling_team_id,
            score=0,
            wickets=0,
            total_balls=0,
            striker_id=None,
            non_striker_id=None,
            bowler_id=None,
            adjustments=adjustments,
            **changes,
        )
        state = reset_innings_timer(state)
        if self.is_test:
            state = replace(state, lead=multi_day.calculate_lead(state))
        return state

    def start_innings(
        self,
        batting_team_id: str,
        bowling_team_id: str,
        target: Optional[int] = None,
        is_follow_on: bool = False,
    ) -> MatchState:
        next_state = self._fresh_innings(
            self.state.innings + 1,
            batting_team_id,
            bowling_team_id,
            target=target,
            is_follow_on_enforced=is_follow_on or self.state.is_follow_on_enforced,
        )
        logger.info("Innings %s started: %s batting", next_state.innings, batting_team_id)
        return self._commit(next_state, "start_innings")

    def enforce_follow_on(self) -> MatchState:
        """Third innings with the side that just batted going in again"""
        next_state = self._fresh_innings(
            3,
            self.state.batting_team_id,
            self.state.bowling_team_id,
            is_follow_on_enforced=True,
        )
        logger.info("Follow-on enforced on %s", next_state.batting_team_id)
        return self._commit(next_state, "enforce_follow_on")

    def start_new_day(self) -> MatchState:
        state = self.state
        next_state = replace(
            state,
            current_day=state.current_day + 1,
            overs_today=0,
            adjustments=replace(
                state.adjustments, session="Morning", day_number=state.current_day + 1
            ),
        )
        logger.info("Day %s started", next_state.current_day)
        return self._commit(next_state, "start_new_day")

    def update_metadata(self, **changes) -> MatchState:
        """
        Patch match metadata in one command.

        Players put at the crease this way are logged as an identity marker,
        so an edit that replays the innings keeps them.
        """
        crease = {key: changes.pop(key) for key in CREASE_FIELDS if key in changes}
        if "adjustments" in changes and isinstance(changes["adjustments"], dict):
            changes["adjustments"] = replace(self.state.adjustments, **changes["adjustments"])
        next_state = replace(self.state, **changes)

        assigned = {key: value for key, value in crease.items() if value}
        if assigned:
            next_state = apply_delivery(
                next_state, Delivery(kind=EventKind.IDENTITY, commentary="Crease updated", **assigned)
            )
        cleared = {key: None for key, value in crease.items() if not value}
        if cleared:
            next_state = replace(next_state, **cleared)
        if self.is_test:
            next_state = replace(next_state, lead=multi_day.calculate_lead(next_state))
        return self._commit(next_state, "update_metadata")

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def pause_timer(self, now: Optional[int] = None) -> MatchState:
        return self._commit(pause_innings_timer(self.state, now), "pause_timer")

    def resume_timer(self, now: Optional[int] = None) -> MatchState:
        return self._commit(resume_innings_timer(self.state, now), "resume_timer")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_end_of_innings(self) -> Optional[EndReason]:
        return self.rules.check_end_of_innings(self.state)

    def bowler_availability(self, player_id: str) -> BowlerAvailability:
        return self.rules.bowler_availability(self.state, player_id)

    def match_status(self) -> multi_day.TestMatchStatus:
        return multi_day.check_test_match_status(self.state, self.rules.wicket_limit())

    def can_enforce_follow_on(self) -> bool:
        return multi_day.can_enforce_follow_on(self.state)
