import logging
import uuid
from dataclasses import dataclass, replace
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api.mirror import mirror
from app.api.schemas import (
    AssignBatterRequest, AssignBowlerRequest, BattingCardResponse, BowlerAvailabilityResponse,
    BowlingCardRowResponse, CorrectIdentityRequest, CreateMatchRequest, DeliveryRequest,
    EditBallRequest, EndInningsRequest, LiveStatsResponse, MatchStateSchema, MatchStatusResponse,
    MetadataRequest, MirrorPayload, PlayerPerformanceResponse, RetireBatterRequest,
    StartInningsRequest, TeamRosterSchema, TimelineBallResponse, WicketRequest,
)
from app.config import settings
from app.database import get_db, get_session
from app.engine import multi_day
from app.engine.match_engine import MatchEngine
from app.engine.rules import MatchFormat, MatchRules
from app.engine.state import MatchState, TestMatchConfig
from app.models.match import Match, MatchStatus
from app.models.player import Player
from app.models.team import Team
from app.scorecard import build_batting_card, build_bowling_card, build_timeline, calculate_mvp, live_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["Scoring"])


@dataclass
class MatchSession:
    match_id: str
    engine: MatchEngine
    teams: Dict[str, TeamRosterSchema]


# In-memory store for active matches; the database holds the latest snapshot
active_matches: Dict[str, MatchSession] = {}


def _rules_for(match: Match, squad_size: int) -> MatchRules:
    return MatchRules(
        match_format=MatchFormat(match.match_format),
        custom_overs=match.custom_overs,
        squad_size=squad_size,
        flexible_squad=match.flexible_squad,
    )


def _persist_snapshot(match_id: str, state: MatchState, wicket_limit: int = 10):
    """Write the latest snapshot; runs as an engine listener"""
    db = get_session()
    try:
        match = db.get(Match, match_id)
        if not match:
            return
        match.snapshot = MatchStateSchema.model_validate(state).model_dump_json()
        if state.is_completed:
            match.status = MatchStatus.COMPLETED
            status = multi_day.check_test_match_status(state, wicket_limit) if state.test_config else None
            if status and status.result:
                match.result_summary = status.result
        elif state.history:
            match.status = MatchStatus.IN_PROGRESS
        db.commit()
    finally:
        db.close()


def _attach(session: MatchSession):
    def on_snapshot(state: MatchState):
        _persist_snapshot(session.match_id, state, session.engine.rules.wicket_limit())
        mirror.publish(session.match_id, state, session.teams)

    session.engine.add_listener(on_snapshot)
    active_matches[session.match_id] = session


def _roster(team: Team) -> TeamRosterSchema:
    return TeamRosterSchema.model_validate(team)


def _restore(match_id: str, db: Session) -> Optional[MatchSession]:
    """Rebuild a session from its stored snapshot (undo history is not kept)"""
    match = db.get(Match, match_id)
    if not match or not match.snapshot:
        return None
    teams = {match.team1_id: _roster(match.team1), match.team2_id: _roster(match.team2)}
    state = MatchStateSchema.model_validate_json(match.snapshot).to_state()
    batting = match.team1 if match.team1_id == state.batting_team_id else match.team2
    session = MatchSession(match_id, MatchEngine(state, _rules_for(match, batting.squad_size)), teams)
    _attach(session)
    logger.info("Restored match %s from snapshot", match_id)
    return session


def get_match_session(match_id: str, db: Session = Depends(get_db)) -> MatchSession:
    session = active_matches.get(match_id) or _restore(match_id, db)
    if not session:
        raise HTTPException(status_code=404, detail="Match not found")
    return session


def _payload(session: MatchSession) -> MirrorPayload:
    return mirror.latest(session.match_id) or mirror.publish(
        session.match_id, session.engine.state, session.teams
    )


def _upsert_team(db: Session, roster: TeamRosterSchema) -> Team:
    team = db.get(Team, roster.id) or Team(id=roster.id)
    team.name = roster.name
    team.short_name = roster.short_name
    db.add(team)
    for entry in roster.players:
        player = db.get(Player, entry.id) or Player(id=entry.id)
        player.name = entry.name
        player.role = entry.role
        player.team_id = roster.id
        db.add(player)
    return team


def _teams_for_innings(state: MatchState, innings: int) -> tuple[str, str]:
    """(batting, bowling) team ids for any innings of the match"""
    if innings == state.innings:
        return state.batting_team_id, state.bowling_team_id
    record = next((s for s in state.innings_scores if s.innings == innings), None)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Innings {innings} not found")
    other = state.bowling_team_id if record.team_id == state.batting_team_id else state.batting_team_id
    return record.team_id, other


# Match lifecycle
@router.post("", response_model=MirrorPayload)
def create_match(request: CreateMatchRequest, db: Session = Depends(get_db)):
    """Register both rosters and open the first innings"""
    match_id = request.id or uuid.uuid4().hex
    if match_id in active_matches or db.get(Match, match_id):
        raise HTTPException(status_code=400, detail="Match already exists")
    if request.team1.id == request.team2.id:
        raise HTTPException(status_code=400, detail="Teams must be different")

    teams = {request.team1.id: request.team1, request.team2.id: request.team2}
    batting_id = request.batting_first_id or request.team1.id
    if batting_id not in teams:
        raise HTTPException(status_code=400, detail="Batting team is not in this match")
    bowling_id = request.team2.id if batting_id == request.team1.id else request.team1.id

    match_format = request.match_format or MatchFormat(settings.MATCH_FORMAT)
    match = Match(
        id=match_id,
        team1_id=request.team1.id,
        team2_id=request.team2.id,
        match_format=match_format.value,
        custom_overs=request.custom_overs,
        flexible_squad=request.flexible_squad,
        status=MatchStatus.SCHEDULED,
    )
    _upsert_team(db, request.team1)
    _upsert_team(db, request.team2)
    db.add(match)
    db.commit()

    test_config = None
    if request.test_config:
        test_config = TestMatchConfig(**request.test_config.model_dump())
    elif match_format == MatchFormat.TEST:
        test_config = TestMatchConfig(follow_on_margin=settings.FOLLOW_ON_MARGIN)

    engine = MatchEngine.new_match(
        batting_id,
        bowling_id,
        rules=_rules_for(match, len(teams[batting_id].players)),
        test_config=test_config,
        toss_winner_id=request.toss_winner_id,
        toss_decision=request.toss_decision,
        umpires=tuple(request.umpires),
    )
    session = MatchSession(match_id, engine, teams)
    _attach(session)
    _persist_snapshot(match_id, engine.state, engine.rules.wicket_limit())

    logger.info("Match %s created: %s vs %s (%s)", match_id, request.team1.id, request.team2.id, match_format.value)
    return mirror.publish(match_id, engine.state, teams)


@router.get("/{match_id}/state", response_model=MirrorPayload)
def get_match_state(session: MatchSession = Depends(get_match_session)):
    return _payload(session)


# Ball commands
@router.post("/{match_id}/deliveries", response_model=MirrorPayload)
def record_delivery(request: DeliveryRequest, session: MatchSession = Depends(get_match_session)):
    if request.is_wicket and request.wicket_type is None:
        raise HTTPException(status_code=400, detail="Wicket needs a dismissal type")
    session.engine.apply_delivery(request.to_delivery())
    return _payload(session)


@router.post("/{match_id}/wickets", response_model=MirrorPayload)
def record_wicket(request: WicketRequest, session: MatchSession = Depends(get_match_session)):
    session.engine.record_wicket(
        request.wicket_type,
        request.dismissed_id,
        fielder_id=request.fielder_id,
        assist_fielder_id=request.assist_fielder_id,
        runs=request.runs,
    )
    return _payload(session)


@router.post("/{match_id}/undo", response_model=MirrorPayload)
def undo(session: MatchSession = Depends(get_match_session)):
    session.engine.undo()
    return _payload(session)


@router.post("/{match_id}/edit-ball", response_model=MirrorPayload)
def edit_ball(request: EditBallRequest, session: MatchSession = Depends(get_match_session)):
    session.engine.edit_ball(request.timestamp, request.patch())
    return _payload(session)


@router.post("/{match_id}/correct-identity", response_model=MirrorPayload)
def correct_identity(request: CorrectIdentityRequest, session: MatchSession = Depends(get_match_session)):
    session.engine.correct_identity(request.old_id, request.new_id, request.role)
    return _payload(session)


# Crease commands
def _require_player(session: MatchSession, team_id: str, player_id: str):
    team = session.teams[team_id]
    if not any(p.id == player_id for p in team.players):
        raise HTTPException(status_code=400, detail=f"Player {player_id} is not in {team.name}")


@router.post("/{match_id}/batters", response_model=MirrorPayload)
def assign_batter(request: AssignBatterRequest, session: MatchSession = Depends(get_match_session)):
    _require_player(session, session.engine.state.batting_team_id, request.player_id)
    session.engine.assign_batter(request.player_id, request.role)
    return _payload(session)


@router.post("/{match_id}/bowlers", response_model=MirrorPayload)
def assign_bowler(request: AssignBowlerRequest, session: MatchSession = Depends(get_match_session)):
    _require_player(session, session.engine.state.bowling_team_id, request.bowler_id)
    session.engine.assign_bowler(request.bowler_id)
    return _payload(session)


@router.post("/{match_id}/bowler-replacement", response_model=MirrorPayload)
def replace_bowler(request: AssignBowlerRequest, session: MatchSession = Depends(get_match_session)):
    _require_player(session, session.engine.state.bowling_team_id, request.bowler_id)
    session.engine.replace_bowler_mid_over(request.bowler_id)
    return _payload(session)


@router.post("/{match_id}/retire", response_model=MirrorPayload)
def retire_batter(request: RetireBatterRequest, session: MatchSession = Depends(get_match_session)):
    if not request.reason.value.startswith("retired"):
        raise HTTPException(status_code=400, detail="Reason must be retired_hurt or retired_out")
    session.engine.retire_batter(request.player_id, request.reason)
    return _payload(session)


# Innings and day lifecycle
@router.post("/{match_id}/declare", response_model=MirrorPayload)
def declare_innings(session: MatchSession = Depends(get_match_session)):
    session.engine.declare_innings()
    return _payload(session)


@router.post("/{match_id}/conclude", response_model=MirrorPayload)
def conclude_innings(session: MatchSession = Depends(get_match_session)):
    session.engine.conclude_innings()
    return _payload(session)


@router.post("/{match_id}/innings/end", response_model=MirrorPayload)
def end_innings(request: EndInningsRequest, session: MatchSession = Depends(get_match_session)):
    session.engine.end_innings(request.complete_match)
    return _payload(session)


@router.post("/{match_id}/innings/start", response_model=MirrorPayload)
def start_innings(request: StartInningsRequest, session: MatchSession = Depends(get_match_session)):
    if {request.batting_team_id, request.bowling_team_id} != set(session.teams):
        raise HTTPException(status_code=400, detail="Innings teams must be the two match teams")
    batting = session.teams[request.batting_team_id]
    session.engine.rules = replace(session.engine.rules, squad_size=len(batting.players))
    target = request.target
    if target is None and session.engine.is_test and session.engine.state.innings == 3:
        target = multi_day.calculate_test_target(session.engine.state)
    session.engine.start_innings(request.batting_team_id, request.bowling_team_id, target, request.is_follow_on)
    return _payload(session)


@router.post("/{match_id}/follow-on", response_model=MirrorPayload)
def enforce_follow_on(session: MatchSession = Depends(get_match_session)):
    if not session.engine.can_enforce_follow_on():
        raise HTTPException(status_code=400, detail="Follow-on cannot be enforced")
    session.engine.end_innings()
    session.engine.enforce_follow_on()
    return _payload(session)


@router.post("/{match_id}/new-day", response_model=MirrorPayload)
def start_new_day(session: MatchSession = Depends(get_match_session)):
    session.engine.start_new_day()
    return _payload(session)


@router.post("/{match_id}/metadata", response_model=MirrorPayload)
def update_metadata(request: MetadataRequest, session: MatchSession = Depends(get_match_session)):
    changes = request.changes()
    if not changes:
        raise HTTPException(status_code=400, detail="No metadata supplied")
    session.engine.update_metadata(**changes)
    return _payload(session)


@router.post("/{match_id}/timer/pause", response_model=MirrorPayload)
def pause_timer(session: MatchSession = Depends(get_match_session)):
    session.engine.pause_timer()
    return _payload(session)


@router.post("/{match_id}/timer/resume", response_model=MirrorPayload)
def resume_timer(session: MatchSession = Depends(get_match_session)):
    session.engine.resume_timer()
    return _payload(session)


# Read models
@router.get("/{match_id}/batting-card", response_model=BattingCardResponse)
def get_batting_card(innings: Optional[int] = None, session: MatchSession = Depends(get_match_session)):
    state = session.engine.state
    number = innings or state.innings
    batting_id, _ = _teams_for_innings(state, number)
    card = build_batting_card(list(state.history), session.teams[batting_id].players, number)
    return BattingCardResponse.model_validate(card)


@router.get("/{match_id}/bowling-card", response_model=list[BowlingCardRowResponse])
def get_bowling_card(innings: Optional[int] = None, session: MatchSession = Depends(get_match_session)):
    state = session.engine.state
    number = innings or state.innings
    _, bowling_id = _teams_for_innings(state, number)
    rows = build_bowling_card(list(state.history), session.teams[bowling_id].players, number)
    return [BowlingCardRowResponse.model_validate(row) for row in rows]


@router.get("/{match_id}/timeline", response_model=list[TimelineBallResponse])
def get_timeline(
    innings: Optional[int] = None,
    latest_first: bool = True,
    session: MatchSession = Depends(get_match_session),
):
    timeline = build_timeline(list(session.engine.state.history), innings, latest_first=latest_first)
    return [TimelineBallResponse.model_validate(ball) for ball in timeline]


@router.get("/{match_id}/mvp", response_model=list[PlayerPerformanceResponse])
def get_mvp(session: MatchSession = Depends(get_match_session)):
    players = [p for team in session.teams.values() for p in team.players]
    ranking = calculate_mvp(list(session.engine.state.history), players)
    return [PlayerPerformanceResponse.model_validate(p) for p in ranking]


@router.get("/{match_id}/live", response_model=LiveStatsResponse)
def get_live_stats(session: MatchSession = Depends(get_match_session)):
    engine = session.engine
    stats = live_stats(engine.state, engine.rules, settings.OVERS_PER_HOUR)
    response = LiveStatsResponse.model_validate(stats)
    reason = engine.check_end_of_innings()
    response.end_of_innings = reason.value if reason else None
    return response


@router.get("/{match_id}/status", response_model=MatchStatusResponse)
def get_match_status(session: MatchSession = Depends(get_match_session)):
    engine = session.engine
    reason = engine.check_end_of_innings()
    response = MatchStatusResponse(
        end_of_innings=reason.value if reason else None,
        lead=engine.state.lead,
        target=engine.state.target,
    )
    if engine.is_test:
        status = engine.match_status()
        response.is_complete = status.is_complete
        response.result = status.result
        response.winner_id = status.winner_id
        response.can_enforce_follow_on = engine.can_enforce_follow_on()
    return response


@router.get("/{match_id}/bowlers/{player_id}/availability", response_model=BowlerAvailabilityResponse)
def get_bowler_availability(player_id: str, session: MatchSession = Depends(get_match_session)):
    return BowlerAvailabilityResponse.model_validate(session.engine.bowler_availability(player_id))


@router.get("/{match_id}/mirror", response_model=MirrorPayload)
def get_mirror(session: MatchSession = Depends(get_match_session)):
    """Latest published snapshot, as spectators see it"""
    return _payload(session)
