"""Initial ledger schema: tenants, inventory, documents, payments, returns, till, audit

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

This migration creates:
1. Tenants and users (tenant scoping for every row)
2. Items and stock adjustments (quantity is NUMERIC(12,3))
3. Customers and suppliers with cached balances
4. Quotations / sales and purchase orders / purchases with line tables
5. Customer and supplier payments and returns
6. Cash registers (till shifts), expenses and the audit log
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', sa.Integer(), nullable=False)


def _tenant_fk():
    return sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False)


def _created_at():
    return sa.Column('created_at', sa.DateTime(), nullable=False)


def _user_fk(name='created_by_user_id', nullable=True):
    return sa.Column(name, sa.Integer(), sa.ForeignKey('users.id'), nullable=nullable)


def upgrade():
    # ==========================================================================
    # 1. TENANCY
    # ==========================================================================
    op.create_table('tenants',
        _id(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code', name='uq_tenants_code'),
        sqlite_autoincrement=True,
    )

    op.create_table('users',
        _id(),
        _tenant_fk(),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='STAFF'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_tenant_id', 'users', ['tenant_id'])

    # ==========================================================================
    # 2. INVENTORY
    # ==========================================================================
    op.create_table('items',
        _id(),
        _tenant_fk(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False, server_default='0'),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('selling_price_cents', sa.Integer(), nullable=False, server_default='0'),
        _created_at(),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_items_tenant_id', 'items', ['tenant_id'])
    op.create_index('ix_items_tenant_name', 'items', ['tenant_id', 'name'])

    op.create_table('stock_adjustments',
        _id(),
        _tenant_fk(),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id'), nullable=False),
        _user_fk('user_id'),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('previous_quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('new_quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_stock_adjustments_tenant_id', 'stock_adjustments', ['tenant_id'])
    op.create_index('ix_stock_adjustments_item_id', 'stock_adjustments', ['item_id'])
    op.create_index('ix_stock_adjustments_tenant_created', 'stock_adjustments', ['tenant_id', 'created_at'])

    # ==========================================================================
    # 3. COUNTERPARTIES
    # ==========================================================================
    for table in ('customers', 'suppliers'):
        op.create_table(table,
            _id(),
            _tenant_fk(),
            sa.Column('name', sa.String(length=255), nullable=False),
            sa.Column('phone', sa.String(length=32), nullable=True),
            sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
            _created_at(),
            sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
            sa.PrimaryKeyConstraint('id'),
            sqlite_autoincrement=True,
        )
        op.create_index(f'ix_{table}_tenant_id', table, ['tenant_id'])
        op.create_index(f'ix_{table}_tenant_balance', table, ['tenant_id', 'balance_cents'])

    # ==========================================================================
    # 4. QUOTATIONS AND SALES
    # ==========================================================================
    op.create_table('quotations',
        _id(),
        _tenant_fk(),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('valid_until', sa.DateTime(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_quotations_tenant_id', 'quotations', ['tenant_id'])
    op.create_index('ix_quotations_status', 'quotations', ['status'])

    op.create_table('quotation_items',
        _id(),
        sa.Column('quotation_id', sa.Integer(), sa.ForeignKey('quotations.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id'), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_quotation_items_quotation_id', 'quotation_items', ['quotation_id'])

    op.create_table('sales',
        _id(),
        _tenant_fk(),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('paid_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_type', sa.String(length=16), nullable=False, server_default='CASH'),
        _user_fk(),
        sa.Column('quotation_id', sa.Integer(), sa.ForeignKey('quotations.id'), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sales_tenant_id', 'sales', ['tenant_id'])
    op.create_index('ix_sales_customer_id', 'sales', ['customer_id'])
    op.create_index('ix_sales_tenant_created', 'sales', ['tenant_id', 'created_at'])
    op.create_index('ix_sales_tenant_type_created', 'sales', ['tenant_id', 'payment_type', 'created_at'])

    op.create_table('sale_items',
        _id(),
        sa.Column('sale_id', sa.Integer(), sa.ForeignKey('sales.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_sale_items_sale_id', 'sale_items', ['sale_id'])
    op.create_index('ix_sale_items_item_id', 'sale_items', ['item_id'])

    # ==========================================================================
    # 5. PURCHASE ORDERS AND PURCHASES
    # ==========================================================================
    op.create_table('purchase_orders',
        _id(),
        _tenant_fk(),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='DRAFT'),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('expected_at', sa.DateTime(), nullable=True),
        _created_at(),
        sa.Column('received_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchase_orders_tenant_id', 'purchase_orders', ['tenant_id'])
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])

    op.create_table('purchase_order_items',
        _id(),
        sa.Column('purchase_order_id', sa.Integer(), sa.ForeignKey('purchase_orders.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id'), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])

    op.create_table('purchases',
        _id(),
        _tenant_fk(),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('paid_amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('payment_type', sa.String(length=16), nullable=False, server_default='CASH'),
        _user_fk(),
        sa.Column('purchase_order_id', sa.Integer(), sa.ForeignKey('purchase_orders.id'), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchases_tenant_id', 'purchases', ['tenant_id'])
    op.create_index('ix_purchases_supplier_id', 'purchases', ['supplier_id'])
    op.create_index('ix_purchases_tenant_created', 'purchases', ['tenant_id', 'created_at'])

    op.create_table('purchase_items',
        _id(),
        sa.Column('purchase_id', sa.Integer(), sa.ForeignKey('purchases.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id'), nullable=False),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('cost_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_purchase_items_purchase_id', 'purchase_items', ['purchase_id'])
    op.create_index('ix_purchase_items_item_id', 'purchase_items', ['item_id'])

    # ==========================================================================
    # 6. PAYMENTS
    # ==========================================================================
    for table, party in (('customer_payments', 'customer'), ('supplier_payments', 'supplier')):
        op.create_table(table,
            _id(),
            _tenant_fk(),
            sa.Column(f'{party}_id', sa.Integer(), sa.ForeignKey(f'{party}s.id'), nullable=False),
            _user_fk(),
            sa.Column('amount_cents', sa.Integer(), nullable=False),
            sa.Column('method', sa.String(length=16), nullable=False, server_default='CASH'),
            sa.Column('note', sa.String(length=255), nullable=True),
            _created_at(),
            sa.PrimaryKeyConstraint('id'),
            sqlite_autoincrement=True,
        )
        op.create_index(f'ix_{table}_tenant_id', table, ['tenant_id'])
        op.create_index(f'ix_{table}_{party}_id', table, [f'{party}_id'])
        op.create_index(f'ix_{table}_tenant_created', table, ['tenant_id', 'created_at'])

    # ==========================================================================
    # 7. RETURNS
    # ==========================================================================
    op.create_table('customer_returns',
        _id(),
        _tenant_fk(),
        sa.Column('sale_id', sa.Integer(), sa.ForeignKey('sales.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id'), nullable=False),
        sa.Column('customer_id', sa.Integer(), sa.ForeignKey('customers.id'), nullable=True),
        _user_fk(),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_adjustment_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reason', sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_customer_returns_tenant_id', 'customer_returns', ['tenant_id'])
    op.create_index('ix_customer_returns_sale_id', 'customer_returns', ['sale_id'])
    op.create_index('ix_customer_returns_sale_item', 'customer_returns', ['sale_id', 'item_id'])

    op.create_table('supplier_returns',
        _id(),
        _tenant_fk(),
        sa.Column('purchase_id', sa.Integer(), sa.ForeignKey('purchases.id'), nullable=False),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('items.id'), nullable=False),
        sa.Column('supplier_id', sa.Integer(), sa.ForeignKey('suppliers.id'), nullable=False),
        _user_fk(),
        sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('balance_adjustment_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('reason', sa.String(length=255), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_supplier_returns_tenant_id', 'supplier_returns', ['tenant_id'])
    op.create_index('ix_supplier_returns_purchase_id', 'supplier_returns', ['purchase_id'])
    op.create_index('ix_supplier_returns_purchase_item', 'supplier_returns', ['purchase_id', 'item_id'])

    # ==========================================================================
    # 8. TILL, EXPENSES, AUDIT
    # ==========================================================================
    op.create_table('cash_registers',
        _id(),
        _tenant_fk(),
        _user_fk('user_id', nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        sa.Column('opening_float_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('closing_count_cents', sa.Integer(), nullable=True),
        sa.Column('expected_cash_cents', sa.Integer(), nullable=True),
        sa.Column('variance_cents', sa.Integer(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('opened_at', sa.DateTime(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cash_registers_tenant_id', 'cash_registers', ['tenant_id'])
    op.create_index('ix_cash_registers_user_id', 'cash_registers', ['user_id'])
    op.create_index('ix_cash_registers_status', 'cash_registers', ['status'])
    op.create_index('ix_cash_registers_opened_at', 'cash_registers', ['opened_at'])
    op.create_index('ix_cash_registers_tenant_user_status', 'cash_registers', ['tenant_id', 'user_id', 'status'])

    op.create_table('expenses',
        _id(),
        _tenant_fk(),
        _user_fk(),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False, server_default='OTHER'),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('paid_by', sa.String(length=128), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_expenses_tenant_id', 'expenses', ['tenant_id'])
    op.create_index('ix_expenses_tenant_created', 'expenses', ['tenant_id', 'created_at'])

    op.create_table('audit_logs',
        _id(),
        _tenant_fk(),
        _user_fk('user_id'),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('entity', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_audit_logs_tenant_id', 'audit_logs', ['tenant_id'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_tenant_created', 'audit_logs', ['tenant_id', 'created_at'])
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity', 'entity_id'])


def downgrade():
    for table in (
        'audit_logs', 'expenses', 'cash_registers',
        'supplier_returns', 'customer_returns',
        'supplier_payments', 'customer_payments',
        'purchase_items', 'purchases', 'purchase_order_items', 'purchase_orders',
        'sale_items', 'sales', 'quotation_items', 'quotations',
        'suppliers', 'customers',
        'stock_adjustments', 'items',
        'users', 'tenants',
    ):
        op.drop_table(table)
