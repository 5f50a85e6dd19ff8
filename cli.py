#!/usr/bin/env python3
"""
CLI for replaying ball logs and printing scorecards
"""
import json
import logging

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from app.api.schemas import (
    AssignBatterRequest, AssignBowlerRequest, CorrectIdentityRequest, CreateMatchRequest,
    DeliveryRequest, EditBallRequest, EndInningsRequest, MatchStateSchema, MetadataRequest,
    RetireBatterRequest, StartInningsRequest, TeamRosterSchema, WicketRequest,
)
from app.config import settings
from app.database import init_db, get_session
from app.engine import MatchEngine, MatchFormat, MatchRules, MatchState
from app.engine.multi_day import check_test_match_status
from app.engine.state import TestMatchConfig
from app.models import Match
from app.scorecard import build_batting_card, build_bowling_card, build_timeline, calculate_mvp

console = Console()


class ReplayLog(CreateMatchRequest):
    """Match header plus the scorer's commands, in order"""
    commands: list[dict] = []


def _apply_command(engine: MatchEngine, command: dict):
    """Run one logged command against the engine"""
    args = dict(command)
    name = args.pop("type")

    if name == "delivery":
        engine.apply_delivery(DeliveryRequest(**args).to_delivery())
    elif name == "wicket":
        req = WicketRequest(**args)
        engine.record_wicket(req.wicket_type, req.dismissed_id, req.fielder_id, req.assist_fielder_id, req.runs)
    elif name == "batter":
        req = AssignBatterRequest(**args)
        engine.assign_batter(req.player_id, req.role)
    elif name == "bowler":
        engine.assign_bowler(AssignBowlerRequest(**args).bowler_id)
    elif name == "bowler_replacement":
        engine.replace_bowler_mid_over(AssignBowlerRequest(**args).bowler_id)
    elif name == "retire":
        req = RetireBatterRequest(**args)
        engine.retire_batter(req.player_id, req.reason)
    elif name == "edit_ball":
        req = EditBallRequest(**args)
        engine.edit_ball(req.timestamp, req.patch())
    elif name == "correct_identity":
        req = CorrectIdentityRequest(**args)
        engine.correct_identity(req.old_id, req.new_id, req.role)
    elif name == "undo":
        engine.undo()
    elif name == "declare":
        engine.declare_innings()
    elif name == "conclude":
        engine.conclude_innings()
    elif name == "end_innings":
        engine.end_innings(EndInningsRequest(**args).complete_match)
    elif name == "start_innings":
        req = StartInningsRequest(**args)
        engine.start_innings(req.batting_team_id, req.bowling_team_id, req.target, req.is_follow_on)
    elif name == "follow_on":
        engine.enforce_follow_on()
    elif name == "new_day":
        engine.start_new_day()
    elif name == "metadata":
        engine.update_metadata(**MetadataRequest(**args).changes())
    else:
        raise click.ClickException(f"Unknown command type: {name}")


def replay_log(log: ReplayLog) -> MatchEngine:
    batting_id = log.batting_first_id or log.team1.id
    bowling_id = log.team2.id if batting_id == log.team1.id else log.team1.id
    teams = {log.team1.id: log.team1, log.team2.id: log.team2}
    match_format = log.match_format or MatchFormat(settings.MATCH_FORMAT)

    rules = MatchRules(
        match_format=match_format,
        custom_overs=log.custom_overs,
        squad_size=len(teams[batting_id].players),
        flexible_squad=log.flexible_squad,
    )
    test_config = TestMatchConfig(**log.test_config.model_dump()) if log.test_config else None
    engine = MatchEngine.new_match(batting_id, bowling_id, rules=rules, test_config=test_config)

    for index, command in enumerate(log.commands, start=1):
        if "type" not in command:
            raise click.ClickException(f"Command {index} has no type")
        try:
            _apply_command(engine, command)
        except ValidationError as e:
            raise click.ClickException(f"Command {index} ({command['type']}) is malformed: {e}")
    return engine


def _innings_teams(state: MatchState, innings: int) -> tuple[str, str]:
    if innings == state.innings:
        return state.batting_team_id, state.bowling_team_id
    record = next(s for s in state.innings_scores if s.innings == innings)
    other = state.bowling_team_id if record.team_id == state.batting_team_id else state.batting_team_id
    return record.team_id, other


def _print_scorecard(state: MatchState, teams: dict[str, TeamRosterSchema], innings: int):
    """Print innings scorecard"""
    batting_id, bowling_id = _innings_teams(state, innings)
    history = list(state.history)
    card = build_batting_card(history, teams[batting_id].players, innings)
    names = {p.id: p.name for team in teams.values() for p in team.players}

    # Batting
    bat_table = Table(title=f"Innings {innings} - {teams[batting_id].name} batting")
    bat_table.add_column("Batter", style="cyan")
    bat_table.add_column("Dismissal")
    bat_table.add_column("R", justify="right")
    bat_table.add_column("B", justify="right")
    bat_table.add_column("4s", justify="right")
    bat_table.add_column("6s", justify="right")
    bat_table.add_column("SR", justify="right")
    bat_table.add_column("Balls")

    for row in card.rows:
        if row.is_out:
            dismissal = row.dismissal
            if row.bowler_id:
                dismissal += f" b {names.get(row.bowler_id, row.bowler_id)}"
        else:
            dismissal = row.status
        bat_table.add_row(
            row.name,
            dismissal,
            str(row.runs),
            str(row.balls),
            str(row.fours),
            str(row.sixes),
            f"{row.strike_rate:.2f}",
            " ".join(row.scoring_sequence),
        )

    console.print(bat_table)
    extras = card.extras
    console.print(
        f"Extras: {extras.total} (w {extras.wides}, nb {extras.no_balls}, b {extras.byes}, lb {extras.leg_byes})"
    )
    console.print(f"[bold]Total: {card.total_display} ({card.overs} ov, RR {card.run_rate:.2f})[/bold]")
    if card.did_not_bat:
        console.print("Did not bat: " + ", ".join(r.name for r in card.did_not_bat))
    if card.fall_of_wickets:
        console.print(
            "Fall of wickets: "
            + ", ".join(f"{f.score}-{f.wicket_number} ({f.name}, {f.over})" for f in card.fall_of_wickets)
        )

    # Bowling
    bowl_table = Table(title="Bowling")
    bowl_table.add_column("Bowler", style="magenta")
    bowl_table.add_column("O", justify="right")
    bowl_table.add_column("M", justify="right")
    bowl_table.add_column("R", justify="right")
    bowl_table.add_column("W", justify="right")
    bowl_table.add_column("Econ", justify="right")

    for row in build_bowling_card(history, teams[bowling_id].players, innings):
        bowl_table.add_row(
            row.name,
            row.overs,
            str(row.maidens),
            str(row.runs),
            str(row.wickets),
            f"{row.economy:.2f}",
        )

    console.print(bowl_table)


def _print_match(
    state: MatchState,
    teams: dict[str, TeamRosterSchema],
    show_mvp: bool,
    show_timeline: bool,
    wicket_limit: int = 10,
):
    innings_numbers = [s.innings for s in state.innings_scores]
    if state.innings not in innings_numbers:
        innings_numbers.append(state.innings)

    for innings in innings_numbers:
        _print_scorecard(state, teams, innings)

    if state.test_config:
        status = check_test_match_status(state, wicket_limit)
        if status.result:
            console.print(Panel(f"[bold green]{status.result}[/bold green]"))

    if show_timeline:
        labels = [ball.label for ball in build_timeline(list(state.history), state.innings)]
        console.print(Panel(" ".join(labels), title=f"Innings {state.innings} timeline"))

    if show_mvp:
        players = [p for team in teams.values() for p in team.players]
        mvp_table = Table(title="Most Valuable Players")
        mvp_table.add_column("#", justify="right")
        mvp_table.add_column("Player", style="cyan")
        mvp_table.add_column("Bat", justify="right")
        mvp_table.add_column("Bowl", justify="right")
        mvp_table.add_column("Field", justify="right")
        mvp_table.add_column("Points", justify="right", style="green")
        for rank, perf in enumerate(calculate_mvp(list(state.history), players)[:10], start=1):
            mvp_table.add_row(
                str(rank),
                perf.name,
                f"{perf.batting_points:g}",
                f"{perf.bowling_points:g}",
                f"{perf.fielding_points:g}",
                f"{perf.points:g}",
            )
        console.print(mvp_table)


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Scorebook - Ball-by-ball cricket scoring"""
    logging.basicConfig(level=log_level or settings.LOG_LEVEL)


@cli.command()
def init():
    """Initialize the database"""
    console.print("[yellow]Initializing database...[/yellow]")
    init_db()
    console.print("[green]Database initialized successfully![/green]")


@cli.command()
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--mvp", is_flag=True, help="Show the MVP ranking")
@click.option("--timeline", is_flag=True, help="Show the live innings ball timeline")
@click.option("--dump", type=click.Path(dir_okay=False), default=None, help="Write the final snapshot as JSON")
def replay(log_file: str, mvp: bool, timeline: bool, dump: str):
    """Replay a JSON ball log and print the scorecards"""
    try:
        with open(log_file) as f:
            log = ReplayLog.model_validate(json.load(f))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise click.ClickException(f"Cannot read {log_file}: {e}")

    engine = replay_log(log)
    teams = {log.team1.id: log.team1, log.team2.id: log.team2}
    state = engine.state

    console.print(Panel(f"[bold]{log.team1.name} vs {log.team2.name}[/bold]"))
    _print_match(state, teams, mvp, timeline, engine.rules.wicket_limit())

    if dump:
        with open(dump, "w") as f:
            f.write(MatchStateSchema.model_validate(state).model_dump_json(indent=2))
        console.print(f"[green]Snapshot written to {dump}[/green]")


@cli.command()
@click.argument("match_id")
@click.option("--mvp", is_flag=True, help="Show the MVP ranking")
def show(match_id: str, mvp: bool):
    """Print scorecards for a stored match"""
    init_db()
    session = get_session()
    try:
        match = session.get(Match, match_id)
        if not match or not match.snapshot:
            raise click.ClickException(f"No stored snapshot for match {match_id}")
        teams = {
            match.team1_id: TeamRosterSchema.model_validate(match.team1),
            match.team2_id: TeamRosterSchema.model_validate(match.team2),
        }
        state = MatchStateSchema.model_validate_json(match.snapshot).to_state()
        batting = match.team1 if match.team1_id == state.batting_team_id else match.team2
        rules = MatchRules(
            match_format=MatchFormat(match.match_format),
            custom_overs=match.custom_overs,
            squad_size=batting.squad_size,
            flexible_squad=match.flexible_squad,
        )
    finally:
        session.close()

    console.print(Panel(f"[bold]{teams[match.team1_id].name} vs {teams[match.team2_id].name}[/bold]"))
    _print_match(state, teams, mvp, show_timeline=False, wicket_limit=rules.wicket_limit())


@cli.command()
def list_matches():
    """List stored matches"""
    init_db()
    session = get_session()
    matches = session.query(Match).order_by(Match.updated_at.desc()).all()

    table = Table(title="Matches")
    table.add_column("ID", style="cyan")
    table.add_column("Teams")
    table.add_column("Format")
    table.add_column("Status", style="magenta")
    table.add_column("Result")

    for match in matches:
        table.add_row(
            match.id,
            f"{match.team1_id} v {match.team2_id}",
            match.match_format,
            match.status.value,
            match.result_summary or "",
        )

    console.print(table)
    session.close()


if __name__ == "__main__":
    cli()
