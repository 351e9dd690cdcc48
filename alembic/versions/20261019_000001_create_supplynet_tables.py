"""Create member, offer and commission tables.

Revision ID: 20261019_000001
Revises:
Create Date: 2026-10-19

Members carry both upline links and a materialized path (JSONB array of
ancestor ids, root first). Commission records form the settlement ledger.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '20261019_000001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create members, offers, offer_variants, purchase_restrictions,
    purchase_orders and commission_records tables."""
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            'rank',
            sa.String(length=20),
            nullable=False,
            server_default='NORMAL',
            comment='NORMAL, VIP, TIER_1..TIER_5, DIRECTOR'
        ),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='ACTIVE',
            comment='ACTIVE, INACTIVE, SUSPENDED'
        ),
        sa.Column('referrer_id', sa.Integer(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column(
            'path',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment='Ancestor ids root first, member excluded'
        ),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.ForeignKeyConstraint(
            ['referrer_id'],
            ['members.id'],
            ondelete='SET NULL'
        ),
        sa.ForeignKeyConstraint(
            ['parent_id'],
            ['members.id'],
            ondelete='SET NULL'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_members_rank', 'members', ['rank'])
    op.create_index('ix_members_status', 'members', ['status'])
    op.create_index('ix_members_referrer_id', 'members', ['referrer_id'])
    op.create_index('ix_members_parent_id', 'members', ['parent_id'])
    # Downline lookups use JSONB containment on path
    op.create_index(
        'ix_members_path_gin',
        'members',
        ['path'],
        postgresql_using='gin'
    )

    op.create_table(
        'offers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='ACTIVE',
            comment='ACTIVE, INACTIVE'
        ),
        sa.Column(
            'total_stock',
            sa.Integer(),
            nullable=False,
            server_default='0'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'total_stock >= 0',
            name='check_offer_total_stock_non_negative'
        )
    )
    op.create_index('ix_offers_status', 'offers', ['status'])

    op.create_table(
        'offer_variants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column(
            'price',
            sa.DECIMAL(precision=18, scale=8),
            nullable=False
        ),
        sa.Column(
            'is_active',
            sa.Boolean(),
            nullable=False,
            server_default=sa.text('true')
        ),
        sa.ForeignKeyConstraint(
            ['offer_id'],
            ['offers.id'],
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'stock >= 0',
            name='check_offer_variant_stock_non_negative'
        ),
        sa.CheckConstraint(
            'price >= 0',
            name='check_offer_variant_price_non_negative'
        )
    )
    op.create_index(
        'ix_offer_variants_offer_id', 'offer_variants', ['offer_id']
    )

    op.create_table(
        'purchase_restrictions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=False),
        sa.Column(
            'max_quantity',
            sa.Integer(),
            nullable=True,
            comment='Max units per purchase, NULL = unlimited'
        ),
        sa.Column(
            'min_rank',
            sa.String(length=20),
            nullable=True,
            comment='Lowest buyer rank allowed, NULL = any'
        ),
        sa.ForeignKeyConstraint(
            ['offer_id'],
            ['offers.id'],
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('offer_id'),
        sa.CheckConstraint(
            'max_quantity IS NULL OR max_quantity > 0',
            name='check_purchase_restriction_max_quantity_positive'
        )
    )

    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('buyer_id', sa.Integer(), nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column(
            'total_amount',
            sa.DECIMAL(precision=18, scale=8),
            nullable=False
        ),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='PENDING',
            comment='PENDING, COMPLETED, CANCELLED'
        ),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.ForeignKeyConstraint(['buyer_id'], ['members.id']),
        sa.ForeignKeyConstraint(['seller_id'], ['members.id']),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'idx_purchase_order_buyer_created',
        'purchase_orders',
        ['buyer_id', 'created_at']
    )
    op.create_index(
        'ix_purchase_orders_seller_id', 'purchase_orders', ['seller_id']
    )

    op.create_table(
        'commission_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('beneficiary_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('source_member_id', sa.Integer(), nullable=False),
        sa.Column(
            'amount',
            sa.DECIMAL(precision=18, scale=8),
            nullable=False
        ),
        sa.Column(
            'rate',
            sa.DECIMAL(precision=10, scale=6),
            nullable=False
        ),
        sa.Column(
            'depth',
            sa.Integer(),
            nullable=False,
            comment='1 = seller, increasing upward'
        ),
        sa.Column(
            'source_type',
            sa.String(length=20),
            nullable=False,
            server_default='PURCHASE'
        ),
        sa.Column(
            'status',
            sa.String(length=20),
            nullable=False,
            server_default='PENDING',
            comment='PENDING, PAID, FAILED'
        ),
        sa.Column(
            'meta',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment='path_depth, max_depth, base_rate, calculation_method'
        ),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()')
        ),
        sa.ForeignKeyConstraint(
            ['beneficiary_id'],
            ['members.id'],
            ondelete='CASCADE'
        ),
        sa.ForeignKeyConstraint(
            ['source_member_id'],
            ['members.id'],
            ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'amount >= 0',
            name='check_commission_amount_non_negative'
        ),
        sa.CheckConstraint(
            'depth >= 1',
            name='check_commission_depth_positive'
        )
    )
    op.create_index(
        'ix_commission_records_beneficiary_id',
        'commission_records',
        ['beneficiary_id']
    )
    op.create_index(
        'ix_commission_records_order_id',
        'commission_records',
        ['order_id']
    )
    op.create_index(
        'ix_commission_records_source_member_id',
        'commission_records',
        ['source_member_id']
    )
    op.create_index(
        'ix_commission_records_status',
        'commission_records',
        ['status']
    )
    op.create_index(
        'idx_commission_beneficiary_created',
        'commission_records',
        ['beneficiary_id', 'created_at']
    )


def downgrade() -> None:
    """Drop engine tables in reverse dependency order."""
    op.drop_index(
        'idx_commission_beneficiary_created',
        table_name='commission_records'
    )
    op.drop_index(
        'ix_commission_records_status', table_name='commission_records'
    )
    op.drop_index(
        'ix_commission_records_source_member_id',
        table_name='commission_records'
    )
    op.drop_index(
        'ix_commission_records_order_id', table_name='commission_records'
    )
    op.drop_index(
        'ix_commission_records_beneficiary_id',
        table_name='commission_records'
    )
    op.drop_table('commission_records')

    op.drop_index(
        'ix_purchase_orders_seller_id', table_name='purchase_orders'
    )
    op.drop_index(
        'idx_purchase_order_buyer_created', table_name='purchase_orders'
    )
    op.drop_table('purchase_orders')

    op.drop_table('purchase_restrictions')

    op.drop_index(
        'ix_offer_variants_offer_id', table_name='offer_variants'
    )
    op.drop_table('offer_variants')

    op.drop_index('ix_offers_status', table_name='offers')
    op.drop_table('offers')

    op.drop_index('ix_members_path_gin', table_name='members')
    op.drop_index('ix_members_parent_id', table_name='members')
    op.drop_index('ix_members_referrer_id', table_name='members')
    op.drop_index('ix_members_status', table_name='members')
    op.drop_index('ix_members_rank', table_name='members')
    op.drop_table('members')
