"""create campaigns, prize_slots and spin_results

Revision ID: 4e7b1d2c9a10
Revises:
Create Date: 2026-10-18 09:12:41.503118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4e7b1d2c9a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("campaigns"):
        op.create_table(
            "campaigns",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("game", sa.String(length=20), server_default="wheel", nullable=False),
            sa.Column("total_amount", sa.Integer(), nullable=True),
            sa.Column("total_winners", sa.Integer(), nullable=False),
            sa.Column("threshold", sa.Integer(), nullable=True),
            sa.Column("current_spent", sa.Integer(), server_default="0", nullable=False),
            sa.Column("current_winners", sa.Integer(), server_default="0", nullable=False),
            sa.Column("rotation_sequence", sa.JSON(), nullable=False),
            sa.Column("current_sequence_index", sa.Integer(), server_default="0", nullable=False),
            sa.Column("round", sa.Integer(), server_default="1", nullable=False),
            sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=False),
            sa.Column("version", sa.Integer(), server_default="1", nullable=False),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.CheckConstraint("current_winners <= total_winners", name="ck_campaigns_winners_within_total"),
        )

    if not inspector.has_table("prize_slots"):
        op.create_table(
            "prize_slots",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("campaign_id", sa.Uuid(as_uuid=True), sa.ForeignKey("campaigns.id"), nullable=False),
            sa.Column("text", sa.String(length=100), nullable=False),
            sa.Column("color", sa.String(length=20), nullable=False),
            sa.Column("text_color", sa.String(length=20), server_default="#000000", nullable=False),
            sa.Column("amount", sa.Integer(), nullable=True),
            sa.Column("max_wins", sa.Integer(), nullable=True),
            sa.Column("current_wins", sa.Integer(), server_default="0", nullable=False),
            sa.Column("position", sa.Integer(), server_default="0", nullable=False),
            sa.Column("created_at", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
            sa.CheckConstraint(
                "current_wins >= 0 AND (max_wins IS NULL OR current_wins <= max_wins)",
                name="ck_prize_slots_wins_within_quota",
            ),
        )
        op.create_index("ix_prize_slots_campaign_id", "prize_slots", ["campaign_id"])

    if not inspector.has_table("spin_results"):
        op.create_table(
            "spin_results",
            sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("campaign_id", sa.Uuid(as_uuid=True), sa.ForeignKey("campaigns.id"), nullable=False),
            sa.Column("slot_id", sa.Uuid(as_uuid=True), sa.ForeignKey("prize_slots.id"), nullable=True),
            sa.Column("winner", sa.String(length=100), nullable=False),
            sa.Column("amount", sa.Integer(), nullable=True),
            sa.Column("substituted", sa.Boolean(), server_default=sa.false(), nullable=False),
            sa.Column("round", sa.Integer(), server_default="1", nullable=False),
            sa.Column("timestamp", sa.TIMESTAMP(), server_default=sa.text("now()"), nullable=True),
        )
        op.create_index("ix_spin_results_campaign_id", "spin_results", ["campaign_id"])


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table("spin_results"):
        op.drop_index("ix_spin_results_campaign_id", table_name="spin_results")
        op.drop_table("spin_results")

    if inspector.has_table("prize_slots"):
        op.drop_index("ix_prize_slots_campaign_id", table_name="prize_slots")
        op.drop_table("prize_slots")

    if inspector.has_table("campaigns"):
        op.drop_table("campaigns")
