"""Create carrier_configs and api_keys tables

Revision ID: 001_carrier_configs
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_carrier_configs'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'carrier_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('carrier_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('carrier_key', sa.String(), nullable=True),
        sa.Column('company_id', sa.String(), nullable=True),
        sa.Column('enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('api_credentials', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column('created_at', postgresql.TIMESTAMP(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.Column('updated_at', postgresql.TIMESTAMP(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_carrier_configs_id'), 'carrier_configs', ['id'], unique=False)
    op.create_index(op.f('ix_carrier_configs_carrier_id'), 'carrier_configs', ['carrier_id'], unique=False)
    op.create_index(op.f('ix_carrier_configs_company_id'), 'carrier_configs', ['company_id'], unique=False)

    op.create_table(
        'api_keys',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(), nullable=False),
        sa.Column('active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', postgresql.TIMESTAMP(), server_default=sa.text("timezone('utc', now())"), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_api_keys_id'), 'api_keys', ['id'], unique=False)
    op.create_index(op.f('ix_api_keys_key'), 'api_keys', ['key'], unique=True)


def downgrade() -> None:
    op.drop_index(op.f('ix_api_keys_key'), table_name='api_keys')
    op.drop_index(op.f('ix_api_keys_id'), table_name='api_keys')
    op.drop_table('api_keys')
    op.drop_index(op.f('ix_carrier_configs_company_id'), table_name='carrier_configs')
    op.drop_index(op.f('ix_carrier_configs_carrier_id'), table_name='carrier_configs')
    op.drop_index(op.f('ix_carrier_configs_id'), table_name='carrier_configs')
    op.drop_table('carrier_configs')
