"""Initial migration

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Canonical products
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('normalized_product_id', sa.String(length=100), nullable=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('release_date', sa.Date(), nullable=True),
        sa.Column('default_thumbnail_url', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('normalized_product_id', name='uq_products_normalized_product_id')
    )

    # Per-ASP listings of a product
    op.create_table(
        'product_sources',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('asp_name', sa.String(length=64), nullable=False),
        sa.Column('original_product_id', sa.String(length=100), nullable=False),
        sa.Column('affiliate_url', sa.Text(), nullable=True),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('sale_price', sa.Integer(), nullable=True),
        sa.Column('is_subscription', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('data_source', sa.String(length=32), nullable=True),
        sa.Column('last_updated', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ),
        sa.UniqueConstraint('product_id', 'asp_name', name='uq_product_source_asp')
    )

    op.create_index('ix_product_sources_product_id', 'product_sources', ['product_id'])
    op.create_index('ix_product_sources_original_product_id', 'product_sources', ['original_product_id'])
    op.create_index('ix_product_sources_asp_name', 'product_sources', ['asp_name'])


def downgrade() -> None:
    op.drop_index('ix_product_sources_asp_name', table_name='product_sources')
    op.drop_index('ix_product_sources_original_product_id', table_name='product_sources')
    op.drop_index('ix_product_sources_product_id', table_name='product_sources')
    op.drop_table('product_sources')
    op.drop_table('products')
