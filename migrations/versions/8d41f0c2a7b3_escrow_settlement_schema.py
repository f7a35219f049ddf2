"""escrow settlement schema

Revision ID: 8d41f0c2a7b3
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '8d41f0c2a7b3'
down_revision = None
branch_labels = None
depends_on = None

BIGINT = sa.BigInteger().with_variant(sa.Integer(), 'sqlite')
MONEY = sa.Numeric(12, 2)


def upgrade():
    op.create_table(
        'bank_account',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False, unique=True),
        sa.Column('account_type', sa.String(10), nullable=False),
        sa.Column('card_holder_name', sa.String(100), nullable=False),
        sa.Column('card_number', sa.String(200), nullable=False),
        sa.Column('expiry_month', sa.String(100), nullable=False),
        sa.Column('expiry_year', sa.String(100), nullable=False),
        sa.Column('cvv', sa.String(100), nullable=False),
        sa.Column('bank_name', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'order',
        sa.Column('id', BIGINT, primary_key=True),
        sa.Column('order_number', sa.String(20), nullable=False, unique=True),
        sa.Column('customer_id', sa.String(64), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('escrow_status', sa.String(20), nullable=False),
        sa.Column('escrow_amount', MONEY, nullable=False),
        sa.Column('escrow_release_date', sa.DateTime(), nullable=True),
        sa.Column('escrow_refund_date', sa.DateTime(), nullable=True),
        sa.Column('escrow_credited', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('subtotal', MONEY, nullable=False),
        sa.Column('shipping_cost', MONEY, nullable=False),
        sa.Column('tax', MONEY, nullable=False),
        sa.Column('total', MONEY, nullable=False),
        sa.Column('shipping_method', sa.String(10), nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=True),
        sa.Column('order_notes', sa.Text(), nullable=True),
        sa.Column('estimated_delivery', sa.DateTime(), nullable=True),
        sa.Column('tracking_number', sa.String(100), nullable=True),
        sa.Column('tracking_url', sa.String(500), nullable=True),
        sa.Column('is_paid', sa.Boolean(), nullable=True),
        sa.Column('payment_status', sa.String(20), nullable=True),
        sa.Column('payment_transaction_id', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('escrow_amount >= 0', name='ck_order_escrow_non_negative'),
    )
    op.create_index('ix_order_customer_created', 'order', ['customer_id', 'created_at'])
    op.create_index('ix_order_status', 'order', ['status'])

    op.create_table(
        'order_item',
        sa.Column('id', BIGINT, primary_key=True),
        sa.Column('order_id', BIGINT, sa.ForeignKey('order.id'), nullable=False),
        sa.Column('product_id', sa.String(64), nullable=False),
        sa.Column('vendor_id', sa.String(64), nullable=False),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', MONEY, nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_order_item_quantity'),
        sa.CheckConstraint('unit_price >= 0', name='ck_order_item_price'),
    )
    op.create_index('ix_order_item_vendor', 'order_item', ['vendor_id'])

    op.create_table(
        'order_sequence',
        sa.Column('day', sa.String(6), primary_key=True),
        sa.Column('last_value', sa.Integer(), nullable=False),
    )
    op.create_table(
        'order_status_log',
        sa.Column('id', BIGINT, primary_key=True),
        sa.Column('order_id', BIGINT, sa.ForeignKey('order.id'), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('updated_by', sa.String(64), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
    )
    op.create_table(
        'order_action_log',
        sa.Column('id', BIGINT, primary_key=True),
        sa.Column('order_id', BIGINT, sa.ForeignKey('order.id'), nullable=False),
        sa.Column('action_type', sa.String(50), nullable=False),
        sa.Column('actor_id', sa.String(64), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=True),
    )

    op.create_table(
        'vendor_balance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('vendor_id', sa.String(64), nullable=False, unique=True),
        sa.Column('bank_account_id', sa.Integer(), sa.ForeignKey('bank_account.id'), nullable=True),
        sa.Column('total_earnings', MONEY, nullable=False),
        sa.Column('available_balance', MONEY, nullable=False),
        sa.Column('pending_balance', MONEY, nullable=False),
        sa.Column('total_payouts', MONEY, nullable=False),
        sa.Column('last_payout', sa.DateTime(), nullable=True),
        sa.Column('last_payout_amount', MONEY, nullable=False),
        sa.Column('minimum_payout_amount', MONEY, nullable=False),
        sa.Column('commission_rate', sa.Numeric(4, 3), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('available_balance >= 0', name='ck_vendor_available_non_negative'),
        sa.CheckConstraint('pending_balance >= 0', name='ck_vendor_pending_non_negative'),
    )
    op.create_table(
        'customer_balance',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_id', sa.String(64), nullable=False, unique=True),
        sa.Column('spending_balance', MONEY, nullable=False),
        sa.Column('total_spent', MONEY, nullable=False),
        sa.Column('last_transaction', sa.DateTime(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('spending_balance >= 0', name='ck_customer_spending_non_negative'),
    )
    op.create_table(
        'balance_transaction',
        sa.Column('id', BIGINT, primary_key=True),
        sa.Column('owner_type', sa.String(10), nullable=False),
        sa.Column('owner_id', sa.String(64), nullable=False),
        sa.Column('pool', sa.String(20), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('order_id', BIGINT, nullable=True),
        sa.Column('reference', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_balance_txn_owner', 'balance_transaction', ['owner_type', 'owner_id', 'created_at'])

    op.create_table(
        'delivery_proof',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', BIGINT, sa.ForeignKey('order.id'), nullable=False, unique=True),
        sa.Column('vendor_id', sa.String(64), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('image_id', sa.String(200), nullable=False),
        sa.Column('delivery_notes', sa.Text(), nullable=True),
        sa.Column('location', sa.JSON(), nullable=True),
        sa.Column('file_metadata', sa.JSON(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(), nullable=False),
        sa.Column('reupload_expires_at', sa.DateTime(), nullable=False),
        sa.Column('can_reupload', sa.Boolean(), nullable=False),
        sa.Column('reupload_count', sa.Integer(), nullable=False),
        sa.Column('verification_status', sa.String(20), nullable=False),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_by', sa.String(64), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_delivery_proof_vendor_uploaded', 'delivery_proof', ['vendor_id', 'uploaded_at'])
    op.create_index('ix_delivery_proof_status_uploaded', 'delivery_proof', ['verification_status', 'uploaded_at'])

    op.create_table(
        'payout',
        sa.Column('id', BIGINT, primary_key=True),
        sa.Column('vendor_id', sa.String(64), nullable=False),
        sa.Column('bank_account_id', sa.Integer(), sa.ForeignKey('bank_account.id'), nullable=True),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('description', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('transfer_id', sa.String(100), nullable=True),
        sa.Column('rail_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_payout_vendor_created', 'payout', ['vendor_id', 'created_at'])


def downgrade():
    op.drop_index('ix_payout_vendor_created', table_name='payout')
    op.drop_table('payout')
    op.drop_index('ix_delivery_proof_status_uploaded', table_name='delivery_proof')
    op.drop_index('ix_delivery_proof_vendor_uploaded', table_name='delivery_proof')
    op.drop_table('delivery_proof')
    op.drop_index('ix_balance_txn_owner', table_name='balance_transaction')
    op.drop_table('balance_transaction')
    op.drop_table('customer_balance')
    op.drop_table('vendor_balance')
    op.drop_table('order_action_log')
    op.drop_table('order_status_log')
    op.drop_table('order_sequence')
    op.drop_index('ix_order_item_vendor', table_name='order_item')
    op.drop_table('order_item')
    op.drop_index('ix_order_status', table_name='order')
    op.drop_index('ix_order_customer_created', table_name='order')
    op.drop_table('order')
    op.drop_table('bank_account')
