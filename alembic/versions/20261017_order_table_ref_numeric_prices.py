"""order_table_ref_numeric_prices

orders.table_id becomes a plain reference so a dining table can be deleted
while its orders remain. Catalog prices move from float to Numeric(10, 2),
the same type order lines capture them in.

Revision ID: 20261017_table_ref_prices
Revises: 20260315_variant_links
Create Date: 2026-10-17 11:05:31.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261017_table_ref_prices'
down_revision: Union[str, Sequence[str], None] = '20260315_variant_links'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PRICE_COLUMNS = (
    ('menu_items', 'price'),
    ('menu_item_variants', 'additional_price'),
    ('addons', 'price'),
)


def upgrade():
    # 1. Orders keep their table id after the table is gone
    with op.batch_alter_table('orders') as batch:
        batch.drop_constraint('fk_orders_table_id_tables', type_='foreignkey')

    # 2. Exact catalog prices
    for table, column in PRICE_COLUMNS:
        with op.batch_alter_table(table) as batch:
            batch.alter_column(column, type_=sa.Numeric(10, 2), existing_type=sa.Float(), existing_nullable=False)


def downgrade():
    for table, column in PRICE_COLUMNS:
        with op.batch_alter_table(table) as batch:
            batch.alter_column(column, type_=sa.Float(), existing_type=sa.Numeric(10, 2), existing_nullable=False)

    # orders pointing at deleted tables would block the constraint
    op.execute("UPDATE orders SET table_id = NULL WHERE table_id NOT IN (SELECT id FROM tables)")
    with op.batch_alter_table('orders') as batch:
        batch.create_foreign_key('fk_orders_table_id_tables', 'tables', ['table_id'], ['id'])
