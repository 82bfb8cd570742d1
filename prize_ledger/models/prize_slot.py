import uuid
from sqlalchemy import Column, String, Integer, TIMESTAMP, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.sql import func
from prize_ledger.db import Base


class PrizeSlot(Base):
    """A wheel section or dice face that can be drawn as an outcome."""

    __tablename__ = "prize_slots"
    __table_args__ = (
        CheckConstraint(
            "current_wins >= 0 AND (max_wins IS NULL OR current_wins <= max_wins)",
            name="ck_prize_slots_wins_within_quota",
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    campaign_id = Column(Uuid(as_uuid=True), ForeignKey("campaigns.id"), nullable=False, index=True)

    text = Column(String(100), nullable=False)
    color = Column(String(20), nullable=False)
    text_color = Column(String(20), nullable=False, default="#000000")

    amount = Column(Integer, nullable=True)

    # NULL = unlimited, 0 = no-prize slot
    max_wins = Column(Integer, nullable=True, default=0)
    current_wins = Column(Integer, nullable=False, default=0)

    position = Column(Integer, nullable=False, default=0)

    created_at = Column(TIMESTAMP, server_default=func.now())

    @property
    def is_no_prize(self) -> bool:
        return self.max_wins == 0

    @property
    def is_unlimited(self) -> bool:
        return self.max_wins is None

    @property
    def remaining(self):
        if self.max_wins is None:
            return None
        return max(0, self.max_wins - (self.current_wins or 0))
