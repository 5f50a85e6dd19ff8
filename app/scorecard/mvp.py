"""
Most valuable player ranking.

Points are summed over every innings of the match, with milestone bonuses
applied to the match totals.
"""
from dataclasses import dataclass, field

from app.engine.dismissals import DismissalType, ball_was_faced
from app.engine.state import BallEvent, ExtraType
from app.scorecard.bowling_card import is_maiden, runs_conceded

POINTS = {
    "run": 1,
    "four": 1,
    "six": 2,
    "fifty": 20,
    "hundred": 40,
    "strike_rate_bonus": 10,
    "wicket": 20,
    "maiden": 4,
    "dot_ball": 0.5,
    "three_wickets": 20,
    "five_wickets": 40,
    "economy_bonus": 10,
    "catch": 10,
    "run_out": 15,
    "stumping": 15,
    "run_out_assist": 7.5,
}


@dataclass
class PlayerStats:
    runs: int = 0
    balls: int = 0
    fours: int = 0
    sixes: int = 0
    wickets: int = 0
    balls_bowled: int = 0
    runs_conceded: int = 0
    maidens: int = 0
    dot_balls: int = 0
    catches: int = 0
    run_outs: int = 0
    stumpings: int = 0
    run_out_assists: int = 0


@dataclass
class PlayerPerformance:
    player_id: str
    name: str
    points: float = 0.0
    batting_points: float = 0.0
    bowling_points: float = 0.0
    fielding_points: float = 0.0
    stats: PlayerStats = field(default_factory=PlayerStats)


def _batting_points(s: PlayerStats) -> float:
    points = s.runs * POINTS["run"] + s.fours * POINTS["four"] + s.sixes * POINTS["six"]
    if s.runs > 30 and s.balls and s.runs / s.balls * 100 > 140:
        points += POINTS["strike_rate_bonus"]
    if s.runs >= 50:
        points += POINTS["fifty"]
    if s.runs >= 100:
        points += POINTS["hundred"]
    return points


def _bowling_points(s: PlayerStats) -> float:
    points = (
        s.wickets * POINTS["wicket"]
        + s.maidens * POINTS["maiden"]
        + s.dot_balls * POINTS["dot_ball"]
    )
    if s.wickets >= 3:
        points += POINTS["three_wickets"]
    if s.wickets >= 5:
        points += POINTS["five_wickets"]
    overs = s.balls_bowled / 6
    if overs >= 2 and s.runs_conceded / overs < 6:
        points += POINTS["economy_bonus"]
    return points


def _fielding_points(s: PlayerStats) -> float:
    return (
        s.catches * POINTS["catch"]
        + s.run_outs * POINTS["run_out"]
        + s.stumpings * POINTS["stumping"]
        + s.run_out_assists * POINTS["run_out_assist"]
    )


def _collect(history: list[BallEvent], players: dict[str, PlayerStats]):
    overs: dict[tuple[str, int, int], list[BallEvent]] = {}

    for event in history:
        if event.is_marker:
            continue

        batter = players.get(event.striker_id)
        if batter:
            batter.runs += event.bat_runs
            if event.bat_runs == 4:
                batter.fours += 1
            elif event.bat_runs == 6:
                batter.sixes += 1
            if event.is_legal and (not event.is_wicket or ball_was_faced(event.wicket_type)):
                batter.balls += 1

        bowler = players.get(event.bowler_id)
        if bowler:
            bowler.runs_conceded += runs_conceded(event)
            if event.is_legal:
                bowler.balls_bowled += 1
            if event.is_wicket and event.credit_bowler:
                bowler.wickets += 1
            # A wicket off a run-less ball is still a dot
            if event.extra_type == ExtraType.NONE and event.runs == 0:
                bowler.dot_balls += 1
            overs.setdefault((event.bowler_id, event.innings, event.over), []).append(event)

        if event.is_wicket:
            fielder = players.get(event.fielder_id)
            if fielder:
                if event.wicket_type == DismissalType.CAUGHT:
                    fielder.catches += 1
                elif event.wicket_type == DismissalType.RUN_OUT:
                    fielder.run_outs += 1
                elif event.wicket_type == DismissalType.STUMPED:
                    fielder.stumpings += 1
            assist = players.get(event.assist_fielder_id)
            if assist and event.wicket_type == DismissalType.RUN_OUT:
                assist.run_out_assists += 1

    for (bowler_id, _, _), over in overs.items():
        if is_maiden(over):
            players[bowler_id].maidens += 1


def calculate_mvp(history: list[BallEvent], players: list) -> list[PlayerPerformance]:
    """Rank every roster player by match points, highest first"""
    stats = {p.id: PlayerStats() for p in players}
    _collect(history, stats)

    performances = []
    for player in players:
        s = stats[player.id]
        batting = _batting_points(s)
        bowling = _bowling_points(s)
        fielding = _fielding_points(s)
        performances.append(
            PlayerPerformance(
                player_id=player.id,
                name=player.name,
                points=batting + bowling + fielding,
                batting_points=batting,
                bowling_points=bowling,
                fielding_points=fielding,
                stats=s,
            )
        )

    performances.sort(key=lambda p: p.points, reverse=True)
    return performances
