from typing import Optional
from sqlalchemy import String, Integer, ForeignKey, Enum, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
import enum
from app.database import Base


class MatchStatus(enum.Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Match(Base):
    """Fixture plus the latest engine snapshot"""
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    team1_id: Mapped[str] = mapped_column(ForeignKey("teams.id"))
    team2_id: Mapped[str] = mapped_column(ForeignKey("teams.id"))
    team1: Mapped["Team"] = relationship("Team", foreign_keys=[team1_id])
    team2: Mapped["Team"] = relationship("Team", foreign_keys=[team2_id])

    # Rules
    match_format: Mapped[str] = mapped_column(String(10), default="T20")
    custom_overs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    flexible_squad: Mapped[bool] = mapped_column(default=False)

    status: Mapped[MatchStatus] = mapped_column(Enum(MatchStatus), default=MatchStatus.SCHEDULED)
    result_summary: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    # Serialized MatchStateSchema, rewritten after every command
    snapshot: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Match {self.id}: {self.team1_id} vs {self.team2_id}>"
