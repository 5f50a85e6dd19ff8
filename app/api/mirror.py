"""
Snapshot mirror channel.

The engine hands every new state to its listeners; the mirror turns that
into a MirrorPayload (state plus both rosters), keeps the latest one per
match for spectators, and fans it out to subscribers.
"""
import logging
from typing import Callable, Dict, List, Optional

from app.api.schemas import MatchStateSchema, MirrorPayload, TeamRosterSchema
from app.engine.state import MatchState

logger = logging.getLogger(__name__)

Subscriber = Callable[[MirrorPayload], None]


class SnapshotMirror:
    def __init__(self):
        self._latest: Dict[str, MirrorPayload] = {}
        self._subscribers: Dict[str, List[Subscriber]] = {}

    def subscribe(self, match_id: str, subscriber: Subscriber):
        self._subscribers.setdefault(match_id, []).append(subscriber)

    def unsubscribe(self, match_id: str, subscriber: Subscriber):
        subscribers = self._subscribers.get(match_id, [])
        if subscriber in subscribers:
            subscribers.remove(subscriber)

    def latest(self, match_id: str) -> Optional[MirrorPayload]:
        return self._latest.get(match_id)

    def publish(
        self,
        match_id: str,
        state: MatchState,
        teams: Dict[str, TeamRosterSchema],
    ) -> MirrorPayload:
        payload = MirrorPayload(
            match_id=match_id,
            state=MatchStateSchema.model_validate(state),
            batting_team=teams[state.batting_team_id],
            bowling_team=teams[state.bowling_team_id],
        )
        self._latest[match_id] = payload
        for subscriber in list(self._subscribers.get(match_id, [])):
            try:
                subscriber(payload)
            except Exception:
                logger.exception("Mirror subscriber failed for match %s", match_id)
        return payload

    def forget(self, match_id: str):
        self._latest.pop(match_id, None)
        self._subscribers.pop(match_id, None)


mirror = SnapshotMirror()
