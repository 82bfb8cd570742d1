import uuid
from sqlalchemy import Column, String, Integer, Boolean, TIMESTAMP, ForeignKey, Uuid
from sqlalchemy.sql import func
from prize_ledger.db import Base


class SpinResult(Base):
    __tablename__ = "spin_results"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    campaign_id = Column(Uuid(as_uuid=True), ForeignKey("campaigns.id"), nullable=False, index=True)
    slot_id = Column(Uuid(as_uuid=True), ForeignKey("prize_slots.id"), nullable=True)

    winner = Column(String(100), nullable=False)
    amount = Column(Integer, nullable=True)

    # awarded a fallback slot instead of the drawn one
    substituted = Column(Boolean, nullable=False, default=False)

    round = Column(Integer, nullable=False, default=1)

    timestamp = Column(TIMESTAMP, server_default=func.now())
