"""initial_schema

Revision ID: 20260301_initial
Revises:
Create Date: 2026-03-01 10:12:44.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260301_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade():
    # 1. Restaurants (tenant boundary)
    op.create_table(
        'restaurants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('owner_name', sa.String(), nullable=True),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_restaurants_user', 'restaurants', ['user_id'])

    # 2. Tables
    op.create_table(
        'tables',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('table_number', sa.Integer(), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('status', sa.String(), nullable=False, server_default='available'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_tables_restaurant', 'tables', ['restaurant_id'])

    # 3. Categories
    op.create_table(
        'categories',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_categories_restaurant', 'categories', ['restaurant_id', 'display_order'])

    # 4. Menu items
    op.create_table(
        'menu_items',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('category_id', sa.String(), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_menu_items_category', 'menu_items', ['category_id'])

    # 5. Variants (still carrying the denormalized add-on group array)
    op.create_table(
        'menu_item_variants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('menu_item_id', sa.String(), sa.ForeignKey('menu_items.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('additional_price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('addon_groups', sa.JSON(), nullable=True),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_variants_item_order', 'menu_item_variants', ['menu_item_id', 'display_order'])

    # 6. Add-on groups and add-ons
    op.create_table(
        'addon_groups',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_selections', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_addon_groups_restaurant', 'addon_groups', ['restaurant_id'])

    op.create_table(
        'addons',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('addon_group_id', sa.String(), sa.ForeignKey('addon_groups.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('price', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_available', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_addons_group', 'addons', ['addon_group_id'])

    # 7. Item -> group links
    op.create_table(
        'menu_item_addon_groups',
        sa.Column('menu_item_id', sa.String(), sa.ForeignKey('menu_items.id'), primary_key=True),
        sa.Column('addon_group_id', sa.String(), sa.ForeignKey('addon_groups.id'), primary_key=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )

    # 8. Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('restaurant_id', sa.String(), sa.ForeignKey('restaurants.id'), nullable=False),
        sa.Column('table_id', sa.String(), sa.ForeignKey('tables.id'), nullable=True),
        sa.Column('order_number', sa.String(), nullable=False),
        sa.Column('order_type', sa.String(), nullable=False, server_default='dine_in'),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('customer_notes', sa.Text(), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('created_by', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('idx_orders_restaurant_created', 'orders', ['restaurant_id', 'created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_id', sa.String(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('menu_item_id', sa.String(), nullable=True),
        sa.Column('item_name', sa.String(), nullable=True),
        sa.Column('item_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('special_instructions', sa.Text(), nullable=True),
    )
    op.create_index('idx_order_items_order', 'order_items', ['order_id'])

    op.create_table(
        'order_item_addons',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_item_id', sa.String(), sa.ForeignKey('order_items.id'), nullable=False),
        sa.Column('addon_name', sa.String(), nullable=False),
        sa.Column('addon_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
    )
    op.create_index('idx_order_item_addons_item', 'order_item_addons', ['order_item_id'])


def downgrade():
    for index, table in (
        ('idx_order_item_addons_item', 'order_item_addons'),
        ('idx_order_items_order', 'order_items'),
        ('idx_orders_restaurant_created', 'orders'),
    ):
        op.drop_index(index, table_name=table)
    op.drop_table('order_item_addons')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('menu_item_addon_groups')
    op.drop_index('idx_addons_group', table_name='addons')
    op.drop_table('addons')
    op.drop_index('idx_addon_groups_restaurant', table_name='addon_groups')
    op.drop_table('addon_groups')
    op.drop_index('idx_variants_item_order', table_name='menu_item_variants')
    op.drop_table('menu_item_variants')
    op.drop_index('idx_menu_items_category', table_name='menu_items')
    op.drop_table('menu_items')
    op.drop_index('idx_categories_restaurant', table_name='categories')
    op.drop_table('categories')
    op.drop_index('idx_tables_restaurant', table_name='tables')
    op.drop_table('tables')
    op.drop_index('idx_restaurants_user', table_name='restaurants')
    op.drop_table('restaurants')
