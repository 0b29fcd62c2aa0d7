"""create user, room and room_member tables

Revision ID: 4c7e2a91d0b3
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7e2a91d0b3'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('avatar', sa.String(length=256), nullable=False, server_default=''),
        sa.Column('password_hash', sa.String(length=256), nullable=False),
    )
    op.create_index('ix_user_username', 'user', ['username'], unique=True)

    op.create_table(
        'room',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('join_code', sa.String(length=12), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='waiting'),
        sa.Column('host_id', sa.String(length=64), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('state', sa.Text(), nullable=False),
        sa.Column('created_at', sa.Float(), nullable=False),
        sa.Column('finished_at', sa.Float(), nullable=True),
    )
    op.create_index('ix_room_join_code', 'room', ['join_code'])
    op.create_index('ix_room_status', 'room', ['status'])

    op.create_table(
        'room_member',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('room_id', sa.String(length=32), sa.ForeignKey('room.id'), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('total_score', sa.Numeric(20, 2), nullable=False, server_default='0'),
    )
    op.create_index('ix_room_member_room_id', 'room_member', ['room_id'])
    op.create_index('ix_room_member_user_id', 'room_member', ['user_id'])


def downgrade():
    op.drop_index('ix_room_member_user_id', table_name='room_member')
    op.drop_index('ix_room_member_room_id', table_name='room_member')
    op.drop_table('room_member')
    op.drop_index('ix_room_status', table_name='room')
    op.drop_index('ix_room_join_code', table_name='room')
    op.drop_table('room')
    op.drop_index('ix_user_username', table_name='user')
    op.drop_table('user')
