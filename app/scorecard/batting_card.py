"""
Batting card built from the ball log.

Roster entries only need ``id`` and ``name`` attributes, so ORM players,
pydantic schemas and plain dataclasses all work.
"""
from dataclasses import dataclass, field
from typing import Optional

from app.engine.dismissals import DismissalType, ball_was_faced, counts_as_team_wicket
from app.engine.state import BallEvent, EventKind, ExtraType, get_over_string

DOT = "•"


@dataclass
class BattingCardRow:
    player_id: str
    name: str
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    strike_rate: float = 0.0
    scoring_sequence: list[str] = field(default_factory=list)
    status: str = "did not bat"  # out, not out, retired hurt, did not bat
    dismissal: str = ""
    bowler_id: Optional[str] = None  # bowler credited with the wicket

    @property
    def is_out(self) -> bool:
        return self.status == "out"


@dataclass
class Extras:
    wides: int = 0
    no_balls: int = 0
    byes: int = 0
    leg_byes: int = 0
    penalty: int = 0

    @property
    def total(self) -> int:
        return self.wides + self.no_balls + self.byes + self.leg_byes + self.penalty


@dataclass
class FallOfWicket:
    score: int
    wicket_number: int
    over: str
    player_id: str
    name: str


@dataclass
class BattingCard:
    rows: list[BattingCardRow]
    did_not_bat: list[BattingCardRow]
    extras: Extras
    fall_of_wickets: list[FallOfWicket]
    total: int
    wickets: int
    overs: str
    run_rate: float

    @property
    def total_display(self) -> str:
        return f"{self.total}/{self.wickets}"


def _add_extras(extras: Extras, event: BallEvent):
    if event.extra_type == ExtraType.WIDE:
        # Anything run off a wide is scored as wides
        extras.wides += 1 + event.extra_runs + event.runs
    elif event.extra_type == ExtraType.NO_BALL:
        extras.no_balls += 1 + event.extra_runs
    elif event.extra_type == ExtraType.BYE:
        extras.byes += event.extra_runs
    elif event.extra_type == ExtraType.LEG_BYE:
        extras.leg_byes += event.extra_runs


def _at_crease(row: Optional[BattingCardRow]) -> Optional[BattingCardRow]:
    if row and row.status == "retired hurt":
        # Back in after retiring hurt
        row.status = "not out"
    return row


def build_batting_card(history: list[BallEvent], batters: list, innings: int) -> BattingCard:
    names = {p.id: p.name for p in batters}
    rows: dict[str, BattingCardRow] = {}

    def row_for(player_id: Optional[str]) -> Optional[BattingCardRow]:
        if not player_id or player_id not in names:
            return None
        if player_id not in rows:
            rows[player_id] = BattingCardRow(player_id, names[player_id], status="not out")
        return rows[player_id]

    extras = Extras()
    fall_of_wickets = []
    wickets = 0
    legal_balls = 0
    score = 0

    for event in (e for e in history if e.innings == innings):
        # First appearance fixes batting order, markers included
        striker = _at_crease(row_for(event.striker_id))
        _at_crease(row_for(event.non_striker_id))

        if event.kind == EventKind.RETIREMENT:
            row = row_for(event.dismissed_id)
            if row:
                if event.wicket_type == DismissalType.RETIRED_HURT:
                    row.status = "retired hurt"
                else:
                    row.status = "out"
                    row.dismissal = event.wicket_type.label if event.wicket_type else "Retired Out"
            if event.is_wicket and counts_as_team_wicket(event.wicket_type):
                wickets += 1
                if row:
                    fall_of_wickets.append(
                        FallOfWicket(score, wickets, get_over_string(legal_balls), row.player_id, row.name)
                    )
            continue
        if event.is_marker:
            continue

        score = event.score_at_ball
        _add_extras(extras, event)
        faced = event.is_legal and (not event.is_wicket or ball_was_faced(event.wicket_type))
        if faced:
            legal_balls += 1

        if striker and (event.is_legal or event.extra_type == ExtraType.NO_BALL):
            if event.is_wicket and event.dismissed_id == event.striker_id:
                striker.scoring_sequence.append("W")
            elif event.bat_runs == 0:
                striker.scoring_sequence.append(DOT)
            else:
                striker.scoring_sequence.append(str(event.bat_runs))
            striker.runs += event.bat_runs
            if event.bat_runs == 4:
                striker.fours += 1
            elif event.bat_runs == 6:
                striker.sixes += 1
            if faced:
                striker.balls += 1

        if event.is_wicket:
            out = row_for(event.dismissed_id)
            if out:
                out.status = "out"
                out.dismissal = event.wicket_type.label if event.wicket_type else "Out"
                out.bowler_id = event.bowler_id if event.credit_bowler else None
            if counts_as_team_wicket(event.wicket_type):
                wickets += 1
                if out:
                    fall_of_wickets.append(
                        FallOfWicket(event.score_at_ball, wickets, get_over_string(legal_balls), out.player_id, out.name)
                    )

    for row in rows.values():
        row.strike_rate = round(row.runs / row.balls * 100, 2) if row.balls else 0.0

    batted = list(rows.values())
    did_not_bat = [BattingCardRow(p.id, p.name) for p in batters if p.id not in rows]
    batter_runs = sum(r.runs for r in batted)
    total = batter_runs + extras.total

    return BattingCard(
        rows=batted,
        did_not_bat=did_not_bat,
        extras=extras,
        fall_of_wickets=fall_of_wickets,
        total=total,
        wickets=wickets,
        overs=get_over_string(legal_balls),
        run_rate=round(total / (legal_balls / 6), 2) if legal_balls else 0.0,
    )
