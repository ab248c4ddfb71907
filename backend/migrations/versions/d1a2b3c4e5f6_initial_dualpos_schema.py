"""initial dualpos schema

Revision ID: d1a2b3c4e5f6
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the dual-currency POS schema from scratch:
- currency_rates: single shared LRD-per-USD rate
- products: per-store catalog with on-hand quantity and both prices
- transactions / transaction_lines: sales, returns and restocks with priced lines
- credits / credit_lines: customer tabs, linked to their payment transaction
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'd1a2b3c4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # currency_rates: one row, overwritten on every update
    # ============================================================================
    op.create_table(
        'currency_rates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('lrd_per_usd', sa.Numeric(precision=12, scale=4), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    # ============================================================================
    # products: catalog and stock, partitioned by store name
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store', sa.String(length=120), nullable=False),
        sa.Column('item', sa.String(length=255), nullable=False),
        sa.Column('measurement', sa.String(length=64), nullable=True),
        sa.Column('category', sa.String(length=120), nullable=True),
        sa.Column('barcode', sa.String(length=128), nullable=True),
        sa.Column('compartment', sa.String(length=64), nullable=True),
        sa.Column('shelf', sa.String(length=64), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('price_usd_cents', sa.Integer(), nullable=True),
        sa.Column('price_lrd_cents', sa.Integer(), nullable=True),
        sa.Column('total_usd_cents', sa.Integer(), nullable=True),
        sa.Column('total_lrd_cents', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('store', 'item', name='uq_products_store_item'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_store', 'products', ['store'])
    op.create_index('ix_products_barcode', 'products', ['barcode'])
    op.create_index('ix_products_store_category', 'products', ['store', 'category'])

    # ============================================================================
    # transactions: sale | return | restock
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('store', sa.String(length=120), nullable=False),
        sa.Column('currency', sa.String(length=4), nullable=False),
        sa.Column('amount_received_lrd_cents', sa.Integer(), nullable=False),
        sa.Column('amount_received_usd_cents', sa.Integer(), nullable=False),
        sa.Column('change_cents', sa.Integer(), nullable=False),
        sa.Column('change_currency', sa.String(length=3), nullable=True),
        sa.Column('total_lrd_cents', sa.Integer(), nullable=False),
        sa.Column('total_usd_cents', sa.Integer(), nullable=False),
        sa.Column('return_reason', sa.String(length=255), nullable=True),
        # Back-reference only; not enforced
        sa.Column('original_transaction_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transactions_kind', 'transactions', ['kind'])
    op.create_index('ix_transactions_store', 'transactions', ['store'])
    op.create_index('ix_transactions_original_transaction_id', 'transactions', ['original_transaction_id'])
    op.create_index('ix_transactions_store_occurred', 'transactions', ['store', 'occurred_at'])
    op.create_index('ix_transactions_kind_occurred', 'transactions', ['kind', 'occurred_at'])

    op.create_table(
        'transaction_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transaction_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_usd_cents', sa.Integer(), nullable=False),
        sa.Column('unit_price_lrd_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['transaction_id'], ['transactions.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transaction_lines_transaction_id', 'transaction_lines', ['transaction_id'])
    op.create_index('ix_transaction_lines_product_id', 'transaction_lines', ['product_id'])

    # ============================================================================
    # credits: customer tabs (pending -> paid)
    # ============================================================================
    op.create_table(
        'credits',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('store', sa.String(length=120), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('total_lrd_cents', sa.Integer(), nullable=False),
        sa.Column('total_usd_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('preferred_currency', sa.String(length=3), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_transaction_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['payment_transaction_id'], ['transactions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_transaction_id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_credits_store', 'credits', ['store'])
    op.create_index('ix_credits_customer_name', 'credits', ['customer_name'])
    op.create_index('ix_credits_store_status', 'credits', ['store', 'status'])
    op.create_index('ix_credits_store_occurred', 'credits', ['store', 'occurred_at'])

    op.create_table(
        'credit_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('credit_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_usd_cents', sa.Integer(), nullable=False),
        sa.Column('unit_price_lrd_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['credit_id'], ['credits.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_credit_lines_credit_id', 'credit_lines', ['credit_id'])
    op.create_index('ix_credit_lines_product_id', 'credit_lines', ['product_id'])


def downgrade():
    op.drop_table('credit_lines')
    op.drop_table('credits')
    op.drop_table('transaction_lines')
    op.drop_table('transactions')
    op.drop_table('products')
    op.drop_table('currency_rates')
