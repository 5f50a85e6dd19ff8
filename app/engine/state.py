"""
Event and state model for the scoring engine.

BallEvent is the atomic fact of one delivery (or one marker). MatchState is
the aggregate the engine replaces after every command; the event log inside
it is kept in chronological order (oldest first) and is the sole source of
truth for every derived number.
"""
import enum
from dataclasses import dataclass, field
from typing import Optional

from app.engine.dismissals import DismissalType


class ExtraType(enum.Enum):
    NONE = "none"
    WIDE = "wide"
    NO_BALL = "no_ball"
    BYE = "bye"
    LEG_BYE = "leg_bye"

    @property
    def label(self) -> str:
        return {
            ExtraType.NONE: "",
            ExtraType.WIDE: "Wide",
            ExtraType.NO_BALL: "NoBall",
            ExtraType.BYE: "Bye",
            ExtraType.LEG_BYE: "LegBye",
        }[self]


class EventKind(enum.Enum):
    DELIVERY = "delivery"
    IDENTITY = "identity"  # opening pair, new batter, new bowler
    RETIREMENT = "retirement"
    BOWLER_CHANGE = "bowler_change"  # mid-over replacement


class CreaseRole(enum.Enum):
    STRIKER = "striker"
    NON_STRIKER = "non_striker"
    BOWLER = "bowler"


def is_legal_ball(extra_type: ExtraType) -> bool:
    return extra_type not in (ExtraType.WIDE, ExtraType.NO_BALL)


def get_over_string(balls: int) -> str:
    """Legal ball count as an overs string, e.g. 23 -> '3.5'"""
    return f"{balls // 6}.{balls % 6}"


@dataclass(frozen=True)
class Coordinates:
    """Pitch/shot position (analytics metadata only)"""
    x: float
    y: float


@dataclass(frozen=True)
class BallEvent:
    """One delivery or marker, fully materialized"""
    timestamp: int
    innings: int
    over: int
    ball: int
    striker_id: Optional[str]
    non_striker_id: Optional[str]
    bowler_id: Optional[str]
    kind: EventKind = EventKind.DELIVERY

    runs: int = 0
    extra_runs: int = 0
    extra_type: ExtraType = ExtraType.NONE

    is_wicket: bool = False
    wicket_type: Optional[DismissalType] = None
    dismissed_id: Optional[str] = None
    fielder_id: Optional[str] = None
    assist_fielder_id: Optional[str] = None
    credit_bowler: bool = False

    score_at_ball: int = 0  # team score after this ball
    commentary: str = ""
    custom_commentary: bool = False

    pitch_coords: Optional[Coordinates] = None
    shot_coords: Optional[Coordinates] = None

    # Crease just before this event; a replay of the innings starts from here
    prior_striker_id: Optional[str] = None
    prior_non_striker_id: Optional[str] = None
    prior_bowler_id: Optional[str] = None

    @property
    def is_marker(self) -> bool:
        return self.kind != EventKind.DELIVERY

    @property
    def is_legal(self) -> bool:
        return is_legal_ball(self.extra_type)

    @property
    def bat_runs(self) -> int:
        # Runs "off the bat" on a wide are scored as wides
        return 0 if self.extra_type == ExtraType.WIDE else self.runs

    @property
    def penalty_runs(self) -> int:
        return 1 if self.extra_type in (ExtraType.WIDE, ExtraType.NO_BALL) else 0

    @property
    def total_runs(self) -> int:
        if self.is_marker:
            return 0
        return self.runs + self.extra_runs + self.penalty_runs

    @property
    def physical_runs(self) -> int:
        """Runs actually run or hit; decides strike rotation"""
        if self.extra_type == ExtraType.NONE:
            return self.runs
        return self.runs + self.extra_runs

    @property
    def over_ball(self) -> str:
        return f"{self.over}.{self.ball}"

    def to_delivery(self) -> "Delivery":
        """Strip derived fields, keeping only what the scorer recorded"""
        return Delivery(
            kind=self.kind,
            runs=self.runs,
            extra_runs=self.extra_runs,
            extra_type=self.extra_type,
            is_wicket=self.is_wicket,
            wicket_type=self.wicket_type,
            dismissed_id=self.dismissed_id,
            fielder_id=self.fielder_id,
            assist_fielder_id=self.assist_fielder_id,
            striker_id=self.striker_id if self.is_marker else None,
            non_striker_id=self.non_striker_id if self.is_marker else None,
            bowler_id=self.bowler_id if self.is_marker else None,
            commentary=self.commentary if self.custom_commentary else None,
            timestamp=self.timestamp,
            pitch_coords=self.pitch_coords,
            shot_coords=self.shot_coords,
        )


@dataclass(frozen=True)
class Delivery:
    """
    Partial event handed to the pipeline by the scorer.

    Crease identities are only read for marker kinds; a delivery always
    uses whoever currently holds the slots.
    """
    kind: EventKind = EventKind.DELIVERY
    runs: int = 0
    extra_runs: int = 0
    extra_type: ExtraType = ExtraType.NONE
    is_wicket: bool = False
    wicket_type: Optional[DismissalType] = None
    dismissed_id: Optional[str] = None
    fielder_id: Optional[str] = None
    assist_fielder_id: Optional[str] = None
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    commentary: Optional[str] = None
    timestamp: Optional[int] = None
    pitch_coords: Optional[Coordinates] = None
    shot_coords: Optional[Coordinates] = None

    @property
    def is_marker(self) -> bool:
        return self.kind != EventKind.DELIVERY


@dataclass(frozen=True)
class InningsScore:
    """Closed innings record"""
    innings: int
    team_id: str
    score: int
    wickets: int
    overs: str


@dataclass(frozen=True)
class TestMatchConfig:
    max_days: int = 5
    overs_per_day: int = 90
    last_hour_overs: int = 15
    follow_on_margin: int = 200


@dataclass(frozen=True)
class MatchTimer:
    start_time: Optional[int] = None
    is_paused: bool = False
    last_pause_time: Optional[int] = None
    total_allowances: int = 0  # ms credited back for stoppages


@dataclass(frozen=True)
class Adjustments:
    overs_lost: int = 0
    declared: bool = False
    concluded: bool = False
    is_last_hour: bool = False
    day_number: int = 1
    session: str = ""


@dataclass(frozen=True)
class MatchState:
    """Complete match state; replaced, never mutated"""
    batting_team_id: str = ""
    bowling_team_id: str = ""
    score: int = 0
    wickets: int = 0
    total_balls: int = 0
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    innings: int = 1
    target: Optional[int] = None

    history: tuple[BallEvent, ...] = ()
    innings_scores: tuple[InningsScore, ...] = ()
    is_completed: bool = False
    is_follow_on_enforced: bool = False

    # Test match metadata
    test_config: Optional[TestMatchConfig] = None
    current_day: int = 1
    overs_today: int = 0
    lead: Optional[int] = None

    toss_winner_id: Optional[str] = None
    toss_decision: Optional[str] = None  # "bat" or "bowl"
    umpires: tuple[str, ...] = ()

    timer: MatchTimer = field(default_factory=MatchTimer)
    adjustments: Adjustments = field(default_factory=Adjustments)

    @property
    def overs_display(self) -> str:
        return get_over_string(self.total_balls)

    @property
    def last_timestamp(self) -> int:
        return self.history[-1].timestamp if self.history else 0

    def innings_events(self, innings: Optional[int] = None) -> list[BallEvent]:
        """Events of one innings, oldest first (defaults to the live innings)"""
        number = self.innings if innings is None else innings
        return [e for e in self.history if e.innings == number]
