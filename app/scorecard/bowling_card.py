"""
Bowling card built from the ball log
"""
from dataclasses import dataclass, field

from app.engine.state import BallEvent, ExtraType, get_over_string


@dataclass
class BowlingCardRow:
    player_id: str
    name: str
    balls: int = 0
    runs: int = 0
    wickets: int = 0
    maidens: int = 0
    overs_history: list[list[BallEvent]] = field(default_factory=list)

    @property
    def overs(self) -> str:
        return get_over_string(self.balls)

    @property
    def economy(self) -> float:
        if self.balls == 0:
            return 0.0
        return round(self.runs / (self.balls / 6), 2)


def runs_conceded(event: BallEvent) -> int:
    """Byes and leg-byes are not charged to the bowler"""
    if event.extra_type in (ExtraType.BYE, ExtraType.LEG_BYE):
        return 0
    return event.runs + event.extra_runs + event.penalty_runs


def is_maiden(over: list[BallEvent]) -> bool:
    legal = [b for b in over if b.is_legal]
    return len(legal) == 6 and sum(runs_conceded(b) for b in over) == 0


def build_bowling_card(history: list[BallEvent], bowlers: list, innings: int) -> list[BowlingCardRow]:
    """Rows for every roster bowler who bowled, in order of first delivery"""
    names = {p.id: p.name for p in bowlers}
    rows: dict[str, BowlingCardRow] = {}
    overs: dict[str, dict[int, list[BallEvent]]] = {}

    for event in history:
        if event.innings != innings or event.is_marker or event.bowler_id not in names:
            continue
        row = rows.setdefault(event.bowler_id, BowlingCardRow(event.bowler_id, names[event.bowler_id]))
        row.runs += runs_conceded(event)
        if event.is_legal:
            row.balls += 1
        if event.is_wicket and event.credit_bowler:
            row.wickets += 1
        overs.setdefault(event.bowler_id, {}).setdefault(event.over, []).append(event)

    for bowler_id, row in rows.items():
        grid = overs.get(bowler_id, {})
        row.overs_history = [grid[index] for index in sorted(grid)]
        row.maidens = sum(1 for over in row.overs_history if is_maiden(over))

    return list(rows.values())
