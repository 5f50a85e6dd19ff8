"""
Dismissal taxonomy.
Per wicket kind: bowler credit, team wicket, ball faced, fielder involved.
"""
import enum
from dataclasses import dataclass
from typing import Optional


class DismissalType(enum.Enum):
    BOWLED = "bowled"
    CAUGHT = "caught"
    LBW = "lbw"
    STUMPED = "stumped"
    HIT_WICKET = "hit_wicket"
    RUN_OUT = "run_out"
    OBSTRUCTING_FIELD = "obstructing_field"
    HIT_BALL_TWICE = "hit_ball_twice"
    HANDLED_BALL = "handled_ball"
    TIMED_OUT = "timed_out"
    RETIRED_OUT = "retired_out"
    RETIRED_HURT = "retired_hurt"

    @property
    def label(self) -> str:
        return DISMISSAL_LABELS[self]


DISMISSAL_LABELS = {
    DismissalType.BOWLED: "Bowled",
    DismissalType.CAUGHT: "Caught",
    DismissalType.LBW: "LBW",
    DismissalType.STUMPED: "Stumped",
    DismissalType.HIT_WICKET: "Hit Wicket",
    DismissalType.RUN_OUT: "Run Out",
    DismissalType.OBSTRUCTING_FIELD: "Obstructing Field",
    DismissalType.HIT_BALL_TWICE: "Hit Ball Twice",
    DismissalType.HANDLED_BALL: "Handled Ball",
    DismissalType.TIMED_OUT: "Timed Out",
    DismissalType.RETIRED_OUT: "Retired Out",
    DismissalType.RETIRED_HURT: "Retired Hurt",
}


@dataclass(frozen=True)
class DismissalRule:
    """How a dismissal kind is credited"""
    credit_bowler: bool
    team_wicket: bool
    ball_faced: bool
    fielder_involved: bool


DISMISSAL_RULES = {
    DismissalType.BOWLED: DismissalRule(True, True, True, False),
    DismissalType.CAUGHT: DismissalRule(True, True, True, True),
    DismissalType.LBW: DismissalRule(True, True, True, False),
    DismissalType.STUMPED: DismissalRule(True, True, True, True),
    DismissalType.HIT_WICKET: DismissalRule(True, True, True, False),
    DismissalType.RUN_OUT: DismissalRule(False, True, True, True),
    DismissalType.OBSTRUCTING_FIELD: DismissalRule(False, True, True, False),
    DismissalType.HIT_BALL_TWICE: DismissalRule(False, True, True, False),
    DismissalType.HANDLED_BALL: DismissalRule(False, True, True, False),
    DismissalType.TIMED_OUT: DismissalRule(False, True, False, False),
    DismissalType.RETIRED_OUT: DismissalRule(False, True, False, False),
    DismissalType.RETIRED_HURT: DismissalRule(False, False, False, False),
}


def get_rule(wicket_type: Optional[DismissalType]) -> Optional[DismissalRule]:
    """Look up the rule for a wicket kind (None when no kind was recorded)"""
    if wicket_type is None:
        return None
    return DISMISSAL_RULES.get(wicket_type)


def credits_bowler(wicket_type: Optional[DismissalType]) -> bool:
    # An unclassified wicket is credited to the bowler
    rule = get_rule(wicket_type)
    return rule.credit_bowler if rule else True


def counts_as_team_wicket(wicket_type: Optional[DismissalType]) -> bool:
    rule = get_rule(wicket_type)
    return rule.team_wicket if rule else True


def ball_was_faced(wicket_type: Optional[DismissalType]) -> bool:
    rule = get_rule(wicket_type)
    return rule.ball_faced if rule else True
