from app.engine.match_engine import MatchEngine
from app.engine.rules import MatchFormat, MatchRules
from app.engine.state import BallEvent, Delivery, MatchState

__all__ = ["MatchEngine", "MatchFormat", "MatchRules", "BallEvent", "Delivery", "MatchState"]
