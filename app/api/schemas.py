"""
Pydantic schemas for API request/response models and the snapshot wire format
"""
from pydantic import BaseModel
from typing import Optional

from app.engine.dismissals import DismissalType
from app.engine.rules import MatchFormat
from app.engine.state import (
    Adjustments, BallEvent, Coordinates, CreaseRole, Delivery, EventKind, ExtraType,
    InningsScore, MatchState, MatchTimer, TestMatchConfig,
)


# Snapshot schemas (engine dataclasses <-> JSON)
class CoordinatesSchema(BaseModel):
    x: float
    y: float

    class Config:
        from_attributes = True


class BallEventSchema(BaseModel):
    timestamp: int
    innings: int
    over: int
    ball: int
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
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
    score_at_ball: int = 0
    commentary: str = ""
    custom_commentary: bool = False
    pitch_coords: Optional[CoordinatesSchema] = None
    shot_coords: Optional[CoordinatesSchema] = None
    prior_striker_id: Optional[str] = None
    prior_non_striker_id: Optional[str] = None
    prior_bowler_id: Optional[str] = None

    class Config:
        from_attributes = True

    def to_event(self) -> BallEvent:
        fields = self.model_dump(exclude={"pitch_coords", "shot_coords"})
        return BallEvent(
            **fields,
            pitch_coords=Coordinates(**self.pitch_coords.model_dump()) if self.pitch_coords else None,
            shot_coords=Coordinates(**self.shot_coords.model_dump()) if self.shot_coords else None,
        )


class InningsScoreSchema(BaseModel):
    innings: int
    team_id: str
    score: int
    wickets: int
    overs: str

    class Config:
        from_attributes = True


class TestMatchConfigSchema(BaseModel):
    max_days: int = 5
    overs_per_day: int = 90
    last_hour_overs: int = 15
    follow_on_margin: int = 200

    class Config:
        from_attributes = True


class MatchTimerSchema(BaseModel):
    start_time: Optional[int] = None
    is_paused: bool = False
    last_pause_time: Optional[int] = None
    total_allowances: int = 0

    class Config:
        from_attributes = True


class AdjustmentsSchema(BaseModel):
    overs_lost: int = 0
    declared: bool = False
    concluded: bool = False
    is_last_hour: bool = False
    day_number: int = 1
    session: str = ""

    class Config:
        from_attributes = True


class MatchStateSchema(BaseModel):
    batting_team_id: str = ""
    bowling_team_id: str = ""
    score: int = 0
    wickets: int = 0
    total_balls: int = 0
    overs_display: str = "0.0"
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    innings: int = 1
    target: Optional[int] = None
    history: list[BallEventSchema] = []
    innings_scores: list[InningsScoreSchema] = []
    is_completed: bool = False
    is_follow_on_enforced: bool = False
    test_config: Optional[TestMatchConfigSchema] = None
    current_day: int = 1
    overs_today: int = 0
    lead: Optional[int] = None
    toss_winner_id: Optional[str] = None
    toss_decision: Optional[str] = None
    umpires: list[str] = []
    timer: MatchTimerSchema = MatchTimerSchema()
    adjustments: AdjustmentsSchema = AdjustmentsSchema()

    class Config:
        from_attributes = True

    def to_state(self) -> MatchState:
        return MatchState(
            batting_team_id=self.batting_team_id,
            bowling_team_id=self.bowling_team_id,
            score=self.score,
            wickets=self.wickets,
            total_balls=self.total_balls,
            striker_id=self.striker_id,
            non_striker_id=self.non_striker_id,
            bowler_id=self.bowler_id,
            innings=self.innings,
            target=self.target,
            history=tuple(e.to_event() for e in self.history),
            innings_scores=tuple(InningsScore(**s.model_dump()) for s in self.innings_scores),
            is_completed=self.is_completed,
            is_follow_on_enforced=self.is_follow_on_enforced,
            test_config=TestMatchConfig(**self.test_config.model_dump()) if self.test_config else None,
            current_day=self.current_day,
            overs_today=self.overs_today,
            lead=self.lead,
            toss_winner_id=self.toss_winner_id,
            toss_decision=self.toss_decision,
            umpires=tuple(self.umpires),
            timer=MatchTimer(**self.timer.model_dump()),
            adjustments=Adjustments(**self.adjustments.model_dump()),
        )


# Roster schemas
class PlayerSchema(BaseModel):
    id: str
    name: str
    role: Optional[str] = None

    class Config:
        from_attributes = True


class TeamRosterSchema(BaseModel):
    id: str
    name: str
    short_name: str = ""
    players: list[PlayerSchema] = []

    class Config:
        from_attributes = True


class MirrorPayload(BaseModel):
    """What listeners and spectators receive after every command"""
    match_id: str
    state: MatchStateSchema
    batting_team: TeamRosterSchema
    bowling_team: TeamRosterSchema


# Requests
class CreateMatchRequest(BaseModel):
    id: Optional[str] = None
    team1: TeamRosterSchema
    team2: TeamRosterSchema
    match_format: Optional[MatchFormat] = None
    custom_overs: Optional[int] = None
    flexible_squad: bool = False
    batting_first_id: Optional[str] = None  # defaults to team1
    toss_winner_id: Optional[str] = None
    toss_decision: Optional[str] = None
    umpires: list[str] = []
    test_config: Optional[TestMatchConfigSchema] = None


class DeliveryRequest(BaseModel):
    runs: int = 0
    extra_runs: int = 0
    extra_type: ExtraType = ExtraType.NONE
    is_wicket: bool = False
    wicket_type: Optional[DismissalType] = None
    dismissed_id: Optional[str] = None
    fielder_id: Optional[str] = None
    assist_fielder_id: Optional[str] = None
    commentary: Optional[str] = None
    pitch_coords: Optional[CoordinatesSchema] = None
    shot_coords: Optional[CoordinatesSchema] = None

    def to_delivery(self) -> Delivery:
        fields = self.model_dump(exclude={"pitch_coords", "shot_coords"})
        return Delivery(
            **fields,
            pitch_coords=Coordinates(**self.pitch_coords.model_dump()) if self.pitch_coords else None,
            shot_coords=Coordinates(**self.shot_coords.model_dump()) if self.shot_coords else None,
        )


class WicketRequest(BaseModel):
    wicket_type: DismissalType
    dismissed_id: str
    fielder_id: Optional[str] = None
    assist_fielder_id: Optional[str] = None
    runs: int = 0


class EditBallRequest(BaseModel):
    timestamp: int
    runs: Optional[int] = None
    extra_runs: Optional[int] = None
    extra_type: Optional[ExtraType] = None
    is_wicket: Optional[bool] = None
    wicket_type: Optional[DismissalType] = None
    dismissed_id: Optional[str] = None
    fielder_id: Optional[str] = None
    assist_fielder_id: Optional[str] = None
    commentary: Optional[str] = None

    def patch(self) -> dict:
        """Only the fields the scorer actually sent"""
        return self.model_dump(exclude_unset=True, exclude={"timestamp"})


class CorrectIdentityRequest(BaseModel):
    old_id: str
    new_id: str
    role: CreaseRole


class AssignBatterRequest(BaseModel):
    player_id: str
    role: CreaseRole = CreaseRole.STRIKER


class AssignBowlerRequest(BaseModel):
    bowler_id: str


class RetireBatterRequest(BaseModel):
    player_id: str
    reason: DismissalType = DismissalType.RETIRED_HURT


class StartInningsRequest(BaseModel):
    batting_team_id: str
    bowling_team_id: str
    target: Optional[int] = None
    is_follow_on: bool = False


class EndInningsRequest(BaseModel):
    complete_match: bool = False


class MetadataRequest(BaseModel):
    toss_winner_id: Optional[str] = None
    toss_decision: Optional[str] = None
    umpires: Optional[list[str]] = None
    striker_id: Optional[str] = None
    non_striker_id: Optional[str] = None
    bowler_id: Optional[str] = None
    current_day: Optional[int] = None
    overs_lost: Optional[int] = None
    is_last_hour: Optional[bool] = None
    session: Optional[str] = None

    def changes(self) -> dict:
        sent = self.model_dump(exclude_unset=True)
        adjustments = {
            key: sent.pop(key) for key in ("overs_lost", "is_last_hour", "session") if key in sent
        }
        if "umpires" in sent and sent["umpires"] is not None:
            sent["umpires"] = tuple(sent["umpires"])
        if adjustments:
            sent["adjustments"] = adjustments
        return sent


# Responses
class BattingCardRowResponse(BaseModel):
    player_id: str
    name: str
    runs: int
    balls: int
    fours: int
    sixes: int
    strike_rate: float
    scoring_sequence: list[str]
    status: str
    dismissal: str
    bowler_id: Optional[str] = None

    class Config:
        from_attributes = True


class ExtrasResponse(BaseModel):
    wides: int
    no_balls: int
    byes: int
    leg_byes: int
    penalty: int
    total: int

    class Config:
        from_attributes = True


class FallOfWicketResponse(BaseModel):
    score: int
    wicket_number: int
    over: str
    player_id: str
    name: str

    class Config:
        from_attributes = True


class BattingCardResponse(BaseModel):
    rows: list[BattingCardRowResponse]
    did_not_bat: list[BattingCardRowResponse]
    extras: ExtrasResponse
    fall_of_wickets: list[FallOfWicketResponse]
    total: int
    wickets: int
    total_display: str
    overs: str
    run_rate: float

    class Config:
        from_attributes = True


class BowlingCardRowResponse(BaseModel):
    player_id: str
    name: str
    balls: int
    overs: str
    maidens: int
    runs: int
    wickets: int
    economy: float
    overs_history: list[list[BallEventSchema]]

    class Config:
        from_attributes = True


class TimelineBallResponse(BaseModel):
    id: str
    label: str
    type: str
    color: str
    display_over: str
    event: BallEventSchema

    class Config:
        from_attributes = True


class PlayerStatsResponse(BaseModel):
    runs: int
    balls: int
    fours: int
    sixes: int
    wickets: int
    balls_bowled: int
    runs_conceded: int
    maidens: int
    dot_balls: int
    catches: int
    run_outs: int
    stumpings: int
    run_out_assists: int

    class Config:
        from_attributes = True


class PlayerPerformanceResponse(BaseModel):
    player_id: str
    name: str
    points: float
    batting_points: float
    bowling_points: float
    fielding_points: float
    stats: PlayerStatsResponse

    class Config:
        from_attributes = True


class OverRateResponse(BaseModel):
    elapsed_seconds: int
    actual_overs: float
    expected_overs: float
    behind_rate: bool

    class Config:
        from_attributes = True


class LiveStatsResponse(BaseModel):
    score: int
    wickets: int
    overs: str
    run_rate: float
    required_rate: Optional[float] = None
    balls_remaining: Optional[int] = None
    runs_needed: Optional[int] = None
    over_rate: OverRateResponse
    end_of_innings: Optional[str] = None

    class Config:
        from_attributes = True


class BowlerAvailabilityResponse(BaseModel):
    allowed: bool
    reason: str
    is_consecutive: bool
    overs_bowled: int

    class Config:
        from_attributes = True


class MatchStatusResponse(BaseModel):
    end_of_innings: Optional[str] = None
    is_complete: bool = False
    result: Optional[str] = None
    winner_id: Optional[str] = None
    can_enforce_follow_on: bool = False
    lead: Optional[int] = None
    target: Optional[int] = None
