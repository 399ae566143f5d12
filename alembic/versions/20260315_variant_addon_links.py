"""variant_addon_links

Move the variant -> add-on group association out of the
menu_item_variants.addon_groups array and into a link table. Duplicate and
dangling group ids in the array are dropped; array order becomes ``position``.

Revision ID: 20260315_variant_links
Revises: 20260301_initial
Create Date: 2026-03-15 09:40:02.000000

"""
import json
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20260315_variant_links'
down_revision: Union[str, Sequence[str], None] = '20260301_initial'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _as_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        value = json.loads(value or "[]")
    return list(value)


def upgrade():
    # 1. Link table
    links = op.create_table(
        'menu_item_variant_addon_groups',
        sa.Column('variant_id', sa.String(), sa.ForeignKey('menu_item_variants.id'), primary_key=True),
        sa.Column('addon_group_id', sa.String(), sa.ForeignKey('addon_groups.id'), primary_key=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )

    # 2. Backfill from the array column
    bind = op.get_bind()
    known = {r[0] for r in bind.execute(sa.text("SELECT id FROM addon_groups"))}
    rows = []
    for variant_id, groups in bind.execute(sa.text("SELECT id, addon_groups FROM menu_item_variants")):
        seen = set()
        for group_id in _as_list(groups):
            if group_id in known and group_id not in seen:
                seen.add(group_id)
                rows.append({'variant_id': variant_id, 'addon_group_id': group_id, 'position': len(seen) - 1})
    if rows:
        op.bulk_insert(links, rows)

    # 3. Drop the array
    with op.batch_alter_table('menu_item_variants') as batch:
        batch.drop_column('addon_groups')


def downgrade():
    with op.batch_alter_table('menu_item_variants') as batch:
        batch.add_column(sa.Column('addon_groups', sa.JSON(), nullable=True))

    bind = op.get_bind()
    grouped = {}
    for variant_id, group_id in bind.execute(sa.text(
        "SELECT variant_id, addon_group_id FROM menu_item_variant_addon_groups ORDER BY variant_id, position"
    )):
        grouped.setdefault(variant_id, []).append(group_id)

    variants = sa.table('menu_item_variants', sa.column('id', sa.String()), sa.column('addon_groups', sa.JSON()))
    for variant_id, groups in grouped.items():
        bind.execute(variants.update().where(variants.c.id == variant_id).values(addon_groups=groups))

    op.drop_table('menu_item_variant_addon_groups')
