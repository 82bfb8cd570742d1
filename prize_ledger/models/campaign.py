import uuid
from sqlalchemy import Column, String, Integer, Boolean, TIMESTAMP, JSON, Uuid, CheckConstraint
from sqlalchemy.sql import func
from prize_ledger.db import Base


class Campaign(Base):
    __tablename__ = "campaigns"
    __table_args__ = (CheckConstraint("current_winners <= total_winners", name="ck_campaigns_winners_within_total"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(100), nullable=False)

    # wheel | dice | slot_machine
    game = Column(String(20), nullable=False, default="wheel")

    # NULL = no spend budget
    total_amount = Column(Integer, nullable=True)
    total_winners = Column(Integer, nullable=False)

    # spend level at which the campaign closes
    threshold = Column(Integer, nullable=True)

    current_spent = Column(Integer, nullable=False, default=0)
    current_winners = Column(Integer, nullable=False, default=0)

    # slot ids in draw order, pooled max_wins times each
    rotation_sequence = Column(JSON, nullable=False, default=list)
    current_sequence_index = Column(Integer, nullable=False, default=0)

    # bumped by reset; spin results carry the round they were awarded in
    round = Column(Integer, nullable=False, default=1)

    is_active = Column(Boolean, nullable=False, default=True)

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(TIMESTAMP, server_default=func.now())

    __mapper_args__ = {"version_id_col": version}
