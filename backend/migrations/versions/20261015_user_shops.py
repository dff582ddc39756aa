"""Many shops per user: user_shops membership table

Revision ID: 20261015_user_shops
Revises: 20261001_initial
Create Date: 2026-10-15

1. Create user_shops (unique per user/shop pair, per-shop permission override)
2. Backfill one row per user with a legacy users.shop_id, copying
   users.accepted_into_shop into the membership
3. Drop users.accepted_into_shop; users.shop_id stays as the last-active hint

Step 2 skips pairs that already exist, so a partially applied upgrade can be
re-run.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261015_user_shops'
down_revision = '20261001_initial'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('user_shops',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('shop_id', sa.Integer(), nullable=False),
        sa.Column('accepted_into_shop', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('permission', sa.String(length=32), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['shop_id'], ['shops.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'shop_id', name='uq_user_shops_user_shop'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('user_shops', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_user_shops_user_id'), ['user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_user_shops_shop_id'), ['shop_id'], unique=False)
        batch_op.create_index('ix_user_shops_shop_accepted', ['shop_id', 'accepted_into_shop'], unique=False)

    op.execute(
        """
        INSERT INTO user_shops (user_id, shop_id, accepted_into_shop)
        SELECT u.id, u.shop_id, u.accepted_into_shop
        FROM users u
        JOIN shops s ON s.id = u.shop_id
        WHERE NOT EXISTS (
            SELECT 1 FROM user_shops us
            WHERE us.user_id = u.id AND us.shop_id = u.shop_id
        )
        """
    )

    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.drop_column('accepted_into_shop')


def downgrade():
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.add_column(sa.Column('accepted_into_shop', sa.Boolean(), nullable=False, server_default='0'))

    # Restore the flag for the membership the hint points at
    op.execute(
        """
        UPDATE users SET accepted_into_shop = COALESCE((
            SELECT us.accepted_into_shop FROM user_shops us
            WHERE us.user_id = users.id AND us.shop_id = users.shop_id
        ), 0)
        """
    )

    op.drop_table('user_shops')
