"""create_trending_tables

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-19 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

interaction_type = sa.Enum(
    'PAGE_VIEW', 'CATEGORY_VIEW', 'PRODUCT_VIEW', 'RESULT_CLICK', 'SEARCH',
    name='interactiontype'
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'user_interactions',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('type', interaction_type, nullable=False),
        sa.Column('product_id', sa.String(length=255), nullable=True),
        sa.Column('brand', sa.String(length=100), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('search_term', sa.String(length=255), nullable=True),
        sa.Column('session_id', sa.String(length=255), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=True),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_interactions_id', 'user_interactions', ['id'])
    op.create_index('ix_user_interactions_type', 'user_interactions', ['type'])
    op.create_index('ix_user_interactions_product_id', 'user_interactions', ['product_id'])
    op.create_index('ix_user_interactions_session_id', 'user_interactions', ['session_id'])
    op.create_index('ix_user_interactions_timestamp', 'user_interactions', ['timestamp'])

    op.create_table(
        'trending_products',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('product_id', sa.String(length=255), nullable=False),
        sa.Column('brand', sa.String(length=100), nullable=True),
        sa.Column('total_views', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_searches', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('trending_score', sa.Float(), nullable=False, server_default='0'),
        sa.Column('first_interaction', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_interaction', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_trending_products_id', 'trending_products', ['id'])
    op.create_index('ix_trending_products_product_id', 'trending_products', ['product_id'], unique=True)
    op.create_index('ix_trending_products_trending_score', 'trending_products', ['trending_score'])
    op.create_index('ix_trending_products_last_interaction', 'trending_products', ['last_interaction'])

    op.create_table(
        'fire_badges',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('product_id', sa.String(length=255), nullable=False),
        sa.Column('position', sa.String(length=8), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('is_manual', sa.Boolean(), nullable=False, server_default=sa.text('false')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_fire_badges_id', 'fire_badges', ['id'])
    op.create_index('ix_fire_badges_product_id', 'fire_badges', ['product_id'])
    op.create_index('ix_fire_badges_end_time', 'fire_badges', ['end_time'])
    op.create_index('ix_fire_badges_is_active', 'fire_badges', ['is_active'])

    op.create_table(
        'trending_config',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('update_interval_minutes', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('is_enabled', sa.Boolean(), nullable=False, server_default=sa.text('true')),
        sa.Column('last_update', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('trending_config')

    op.drop_index('ix_fire_badges_is_active', 'fire_badges')
    op.drop_index('ix_fire_badges_end_time', 'fire_badges')
    op.drop_index('ix_fire_badges_product_id', 'fire_badges')
    op.drop_index('ix_fire_badges_id', 'fire_badges')
    op.drop_table('fire_badges')

    op.drop_index('ix_trending_products_last_interaction', 'trending_products')
    op.drop_index('ix_trending_products_trending_score', 'trending_products')
    op.drop_index('ix_trending_products_product_id', 'trending_products')
    op.drop_index('ix_trending_products_id', 'trending_products')
    op.drop_table('trending_products')

    op.drop_index('ix_user_interactions_timestamp', 'user_interactions')
    op.drop_index('ix_user_interactions_session_id', 'user_interactions')
    op.drop_index('ix_user_interactions_product_id', 'user_interactions')
    op.drop_index('ix_user_interactions_type', 'user_interactions')
    op.drop_index('ix_user_interactions_id', 'user_interactions')
    op.drop_table('user_interactions')
    interaction_type.drop(op.get_bind(), checkfirst=True)
