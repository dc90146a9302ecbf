"""Create stock_takes, stock_take_scans and discrepancy_resolutions tables

Revision ID: b4d2f6a8c0e3
Revises: a3c1e5f7b9d2
Create Date: 2026-09-30

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'b4d2f6a8c0e3'
down_revision: Union[str, None] = 'a3c1e5f7b9d2'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'stock_takes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='in_progress'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('report', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_stock_takes_status', 'stock_takes', ['status'])

    op.create_table(
        'stock_take_scans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stock_take_id', sa.Integer(), nullable=False),
        sa.Column('security_barcode', sa.String(), nullable=False),
        sa.Column('scanned_at', sa.DateTime(), nullable=False),
        sa.Column('found_in_database', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(), nullable=True),
        sa.Column('product_name', sa.String(), nullable=True),
        sa.Column('generation', sa.String(), nullable=True),
        sa.ForeignKeyConstraint(['stock_take_id'], ['stock_takes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'stock_take_id', 'security_barcode', name='uq_stock_take_scans_barcode'
        ),
    )

    op.create_table(
        'discrepancy_resolutions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stock_take_id', sa.Integer(), nullable=False),
        sa.Column('security_barcode', sa.String(), nullable=False),
        sa.Column('resolution_status', sa.String(), nullable=False),
        sa.Column('discrepancy_type', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['stock_take_id'], ['stock_takes.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'stock_take_id',
            'security_barcode',
            name='uq_discrepancy_resolutions_barcode',
        ),
    )


def downgrade() -> None:
    op.drop_table('discrepancy_resolutions')
    op.drop_table('stock_take_scans')
    op.drop_table('stock_takes')
