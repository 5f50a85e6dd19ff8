"""
Format-aware match rules: overs, the one-fifth bowling quota, and when an
innings ends.
"""
import enum
import math
from dataclasses import dataclass
from typing import Optional

from app.engine.state import MatchState

EXPECTED_MS_PER_OVER = 4.25 * 60 * 1000


class MatchFormat(enum.Enum):
    T10 = "T10"
    T20 = "T20"
    FORTY_OVER = "40-over"
    FIFTY_OVER = "50-over"
    TEST = "Test"

    @property
    def default_overs(self) -> int:
        # Test overs are per day
        return {
            MatchFormat.T10: 10,
            MatchFormat.T20: 20,
            MatchFormat.FORTY_OVER: 40,
            MatchFormat.FIFTY_OVER: 50,
            MatchFormat.TEST: 90,
        }[self]


class EndReason(enum.Enum):
    DECLARED = "Declared"
    CONCLUDED = "Match Concluded"
    ALL_OUT = "All Out"
    OVERS_COMPLETED = "Overs Completed"
    TARGET_CHASED = "Target Chased"


@dataclass
class BowlerStats:
    balls: int = 0

    @property
    def overs(self) -> int:
        return self.balls // 6


@dataclass
class BowlerAvailability:
    allowed: bool
    reason: str  # OK, Quota Full, Max Bonus Overs Used, Consecutive Over
    is_consecutive: bool
    overs_bowled: int


@dataclass
class MatchRules:
    """Rules for one fixture; squad size drives the all-out wicket count"""
    match_format: MatchFormat = MatchFormat.T20
    custom_overs: Optional[int] = None
    squad_size: int = 11
    flexible_squad: bool = False

    @property
    def is_test(self) -> bool:
        return self.match_format == MatchFormat.TEST

    def overs_allowed(self, state: MatchState) -> int:
        raw = self.custom_overs or self.match_format.default_overs
        return max(1, raw - state.adjustments.overs_lost)

    def quotas(self, state: MatchState) -> tuple[int, int, int]:
        """(base, remainder, max) overs per bowler"""
        overs = self.overs_allowed(state)
        return overs // 5, overs % 5, math.ceil(overs / 5)

    def bowler_stats(self, state: MatchState, bowler_ids: Optional[list[str]] = None) -> dict[str, BowlerStats]:
        stats = {player_id: BowlerStats() for player_id in bowler_ids or []}
        for event in state.innings_events():
            if event.is_marker or not event.is_legal or not event.bowler_id:
                continue
            stats.setdefault(event.bowler_id, BowlerStats()).balls += 1
        return stats

    def bowlers_using_bonus_overs(self, state: MatchState) -> int:
        base, _, _ = self.quotas(state)
        return sum(1 for s in self.bowler_stats(state).values() if s.balls > base * 6)

    def bowler_availability(self, state: MatchState, player_id: str) -> BowlerAvailability:
        stats = self.bowler_stats(state).get(player_id, BowlerStats())
        overs_bowled = stats.overs
        balls_into_over = stats.balls % 6

        is_consecutive = (
            state.total_balls > 0
            and state.total_balls % 6 == 0
            and state.bowler_id == player_id
        )

        if not self.is_test:
            base, remainder, max_quota = self.quotas(state)
            if overs_bowled >= max_quota:
                return BowlerAvailability(False, "Quota Full", is_consecutive, overs_bowled)
            if (
                overs_bowled == base
                and balls_into_over == 0
                and remainder > 0
                and self.bowlers_using_bonus_overs(state) >= remainder
            ):
                return BowlerAvailability(False, "Max Bonus Overs Used", is_consecutive, overs_bowled)

        return BowlerAvailability(
            allowed=not is_consecutive,
            reason="Consecutive Over" if is_consecutive else "OK",
            is_consecutive=is_consecutive,
            overs_bowled=overs_bowled,
        )

    def wicket_limit(self) -> int:
        squad = self.squad_size if self.squad_size > 0 else 11
        if self.flexible_squad:
            return squad - 1
        return min(10, squad - 1)

    def check_end_of_innings(self, state: MatchState) -> Optional[EndReason]:
        if state.adjustments.declared:
            return EndReason.DECLARED
        if state.adjustments.concluded:
            return EndReason.CONCLUDED
        if state.wickets >= self.wicket_limit():
            return EndReason.ALL_OUT
        if not self.is_test and state.total_balls >= self.overs_allowed(state) * 6:
            return EndReason.OVERS_COMPLETED
        if state.target is not None and state.score >= state.target:
            return EndReason.TARGET_CHASED
        return None

    def target_duration_ms(self, state: MatchState) -> float:
        return self.overs_allowed(state) * EXPECTED_MS_PER_OVER
