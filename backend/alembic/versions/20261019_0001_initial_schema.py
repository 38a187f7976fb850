"""initial schema: senders, receivers, statements

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '20261019_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('senders',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('sender_fullname', sa.String(length=255), nullable=False),
                    sa.Column('sender_passport', sa.String(length=64), nullable=False),
                    )
    op.create_index('ix_senders_sender_passport', 'senders',
                    ['sender_passport'], unique=True)

    op.create_table('receivers',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('receiver_fullname', sa.String(length=255), nullable=False),
                    sa.Column('receiver_account_number', sa.String(length=64), nullable=False),
                    sa.Column('receiver_swift', sa.String(length=11), nullable=False),
                    )
    op.create_index('ix_receivers_receiver_account_number', 'receivers',
                    ['receiver_account_number'], unique=True)

    op.create_table('statements',
                    sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
                    sa.Column('sender_id', sa.Integer(),
                              sa.ForeignKey('senders.id'), nullable=False),
                    sa.Column('receiver_id', sa.Integer(),
                              sa.ForeignKey('receivers.id'), nullable=False),
                    sa.Column('amount', sa.Numeric(18, 2), nullable=False),
                    sa.Column('currency', sa.String(length=3), nullable=False),
                    sa.Column('status', sa.String(length=20), nullable=False,
                              server_default='PENDING'),
                    sa.Column('created_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.Column('updated_at', sa.DateTime(timezone=True),
                              server_default=sa.func.now(), nullable=False),
                    sa.CheckConstraint('amount >= 0',
                                       name='check_statement_amount_positive'),
                    sa.CheckConstraint(
                        "status IN ('PENDING', 'APPROVED', 'REJECTED', 'COMPLETED', 'FAILED', 'CANCELLED')",
                        name='check_valid_statement_status'),
                    )
    op.create_index('ix_statements_sender_id', 'statements', ['sender_id'])
    op.create_index('ix_statements_receiver_id', 'statements', ['receiver_id'])
    op.create_index('idx_statement_status_created', 'statements', ['status', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_statement_status_created', table_name='statements')
    op.drop_index('ix_statements_receiver_id', table_name='statements')
    op.drop_index('ix_statements_sender_id', table_name='statements')
    op.drop_table('statements')
    op.drop_index('ix_receivers_receiver_account_number', table_name='receivers')
    op.drop_table('receivers')
    op.drop_index('ix_senders_sender_passport', table_name='senders')
    op.drop_table('senders')
