"""initial_store_schema

Revision ID: 3f9c1a7e2b40
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7e2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create catalogue, stock, customer, sale and credit ledger tables."""
    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('barcode', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.Uuid(), nullable=True),
        sa.Column('price', sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column('cost', sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column('reorder_level', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('is_weight_based', sa.Boolean(), nullable=False),
        sa.Column(
            'pricing_unit',
            sa.Enum('PIECE', 'KG', 'G', 'PER_100G', name='pricingunit'),
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('price >= 0', name='ck_product_price_non_negative'),
        sa.CheckConstraint('cost >= 0', name='ck_product_cost_non_negative'),
        sa.CheckConstraint('reorder_level >= 0', name='ck_product_reorder_level_non_negative'),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('barcode'),
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_category', 'products', ['category_id'])

    op.create_table(
        'inventory',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='ck_inventory_quantity_non_negative'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id'),
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('phone'),
    )
    op.create_index('ix_customers_name', 'customers', ['name'])
    op.create_index('ix_customers_email', 'customers', ['email'])

    op.create_table(
        'sales',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=True),
        sa.Column('payment_type', sa.Enum('CASH', 'CREDIT', name='paymenttype'), nullable=False),
        sa.Column('status', sa.Enum('COMPLETED', 'VOIDED', name='salestatus'), nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=24, scale=7), nullable=False),
        sa.Column('sync_id', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint(
            "payment_type != 'CREDIT' OR customer_id IS NOT NULL",
            name='ck_sale_credit_requires_customer',
        ),
        sa.CheckConstraint('total_amount >= 0', name='ck_sale_total_non_negative'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sync_id'),
    )
    op.create_index('ix_sales_created_at', 'sales', ['created_at'])
    op.create_index('ix_sales_customer', 'sales', ['customer_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])

    op.create_table(
        'sale_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('sale_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=20, scale=4), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=24, scale=7), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_sale_item_quantity_positive'),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sale_items_sale', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_product', 'sale_items', ['product_id'])

    op.create_table(
        'credit_ledger',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('sale_id', sa.Uuid(), nullable=True),
        sa.Column('type', sa.Enum('CHARGE', 'PAYMENT', name='creditentrytype'), nullable=False),
        sa.Column('amount', sa.Numeric(precision=24, scale=7), nullable=False),
        sa.Column('balance', sa.Numeric(precision=24, scale=7), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_credit_ledger_amount_positive'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id', 'sequence', name='uq_credit_ledger_customer_sequence'),
    )
    op.create_index('ix_credit_ledger_customer_created', 'credit_ledger', ['customer_id', 'created_at'])
    op.create_index('ix_credit_ledger_sale', 'credit_ledger', ['sale_id'])


def downgrade() -> None:
    """Drop every store table and its enum types."""
    op.drop_index('ix_credit_ledger_sale', table_name='credit_ledger')
    op.drop_index('ix_credit_ledger_customer_created', table_name='credit_ledger')
    op.drop_table('credit_ledger')
    op.drop_index('ix_sale_items_product', table_name='sale_items')
    op.drop_index('ix_sale_items_sale', table_name='sale_items')
    op.drop_table('sale_items')
    op.drop_index('ix_sales_status', table_name='sales')
    op.drop_index('ix_sales_customer', table_name='sales')
    op.drop_index('ix_sales_created_at', table_name='sales')
    op.drop_table('sales')
    op.drop_index('ix_customers_email', table_name='customers')
    op.drop_index('ix_customers_name', table_name='customers')
    op.drop_table('customers')
    op.drop_table('inventory')
    op.drop_index('ix_products_category', table_name='products')
    op.drop_index('ix_products_name', table_name='products')
    op.drop_table('products')
    op.drop_table('categories')

    sa.Enum(name='creditentrytype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='salestatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='paymenttype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='pricingunit').drop(op.get_bind(), checkfirst=True)
