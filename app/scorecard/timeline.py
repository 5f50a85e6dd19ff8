"""
Ball timeline for tickers and over-by-over strips.

Built oldest-first like the log; pass latest_first=True only when handing
the list to a display.
"""
from dataclasses import dataclass

from app.engine.state import BallEvent, ExtraType

DOT = "•"


@dataclass
class TimelineBall:
    id: str
    event: BallEvent
    label: str
    type: str  # wicket, extra, boundary, dot, score
    color: str
    display_over: str


def describe_ball(event: BallEvent) -> tuple[str, str, str]:
    """(label, type, colour tag) for one delivery"""
    if event.is_wicket:
        return "W", "wicket", "red"
    if event.extra_type == ExtraType.WIDE:
        return f"{1 + event.extra_runs}wd", "extra", "blue"
    if event.extra_type == ExtraType.NO_BALL:
        return f"{1 + event.runs + event.extra_runs}nb", "extra", "purple"
    if event.extra_type == ExtraType.BYE:
        return f"{event.extra_runs}b", "extra", "amber"
    if event.extra_type == ExtraType.LEG_BYE:
        return f"{event.extra_runs}lb", "extra", "amber"
    if event.bat_runs == 4:
        return "4", "boundary", "indigo"
    if event.bat_runs == 6:
        return "6", "boundary", "emerald"
    if event.runs == 0:
        return DOT, "dot", "slate"
    return str(event.runs + event.extra_runs), "score", "slate-dark"


def build_timeline(history: list[BallEvent], innings=None, latest_first: bool = False) -> list[TimelineBall]:
    timeline = []
    for index, event in enumerate(history):
        if event.is_marker or (innings is not None and event.innings != innings):
            continue
        label, kind, color = describe_ball(event)
        timeline.append(
            TimelineBall(
                id=f"timeline-{event.timestamp}-{index}",
                event=event,
                label=label,
                type=kind,
                color=color,
                display_over=event.over_ball,
            )
        )
    if latest_first:
        timeline.reverse()
    return timeline
