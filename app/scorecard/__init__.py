from app.scorecard.batting_card import BattingCard, build_batting_card
from app.scorecard.bowling_card import BowlingCardRow, build_bowling_card
from app.scorecard.live import LiveStats, live_stats
from app.scorecard.mvp import PlayerPerformance, calculate_mvp
from app.scorecard.timeline import TimelineBall, build_timeline

__all__ = [
    "BattingCard",
    "build_batting_card",
    "BowlingCardRow",
    "build_bowling_card",
    "LiveStats",
    "live_stats",
    "PlayerPerformance",
    "calculate_mvp",
    "TimelineBall",
    "build_timeline",
]
