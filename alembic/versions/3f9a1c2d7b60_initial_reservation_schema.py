"""initial_reservation_schema

Revision ID: 3f9a1c2d7b60
Revises:
Create Date: 2025-11-24 09:12:41.508213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7b60'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    """Create organizations, users, resource catalog and bookings tables"""
    op.create_table(
        'organizations',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('enabled_sections', sa.JSON(), nullable=False),
        sa.Column('meeting_namespace', sa.String(length=100), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sa.UniqueConstraint('code'),
    )
    op.create_index('ix_organizations_code', 'organizations', ['code'])
    op.create_index('ix_organizations_meeting_namespace', 'organizations', ['meeting_namespace'])

    op.create_table(
        'users',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False, server_default='member'),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])

    op.create_table(
        'pool_resources',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('license_plate', sa.String(length=32), nullable=True),
        sa.Column('organization_id', sa.UUID(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='available'),
        sa.Column('unavailable_from', sa.DateTime(), nullable=True),
        sa.Column('unavailable_until', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.UniqueConstraint('license_plate'),
    )
    op.create_index('ix_pool_resources_organization_id', 'pool_resources', ['organization_id'])
    op.create_index('ix_pool_resources_status', 'pool_resources', ['status'])

    op.create_table(
        'ephemeral_resources',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('label', sa.String(length=255), nullable=False),
        sa.Column('license_plate', sa.String(length=32), nullable=True),
        sa.Column('day', sa.Date(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
    )
    op.create_index('ix_ephemeral_resources_org_day', 'ephemeral_resources', ['organization_id', 'day'])

    op.create_table(
        'meeting_rooms',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
    )
    op.create_index('ix_meeting_rooms_organization_id', 'meeting_rooms', ['organization_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('organization_id', sa.UUID(), nullable=False),
        sa.Column('source_organization_id', sa.UUID(), nullable=True),
        sa.Column('user_id', sa.UUID(), nullable=True),
        sa.Column('pool_resource_id', sa.UUID(), nullable=True),
        sa.Column('ephemeral_resource_id', sa.UUID(), nullable=True),
        sa.Column('room_id', sa.UUID(), nullable=True),
        sa.Column('requester_name', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('note', sa.Text(), nullable=False, server_default=''),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['source_organization_id'], ['organizations.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['pool_resource_id'], ['pool_resources.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['ephemeral_resource_id'], ['ephemeral_resources.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['room_id'], ['meeting_rooms.id'], ondelete='CASCADE'),
        sa.CheckConstraint('end_at > start_at', name='ck_bookings_valid_range'),
        sa.CheckConstraint(
            '(CASE WHEN pool_resource_id IS NULL THEN 0 ELSE 1 END'
            ' + CASE WHEN ephemeral_resource_id IS NULL THEN 0 ELSE 1 END'
            ' + CASE WHEN room_id IS NULL THEN 0 ELSE 1 END) = 1',
            name='ck_bookings_single_resource',
        ),
    )
    op.create_index('ix_bookings_org_start', 'bookings', ['organization_id', 'start_at'])
    op.create_index('ix_bookings_source_organization_id', 'bookings', ['source_organization_id'])
    op.create_index('ix_bookings_user_id', 'bookings', ['user_id'])
    op.create_index('ix_bookings_pool_window', 'bookings', ['pool_resource_id', 'start_at', 'end_at'])
    op.create_index('ix_bookings_ephemeral_window', 'bookings', ['ephemeral_resource_id', 'start_at', 'end_at'])
    op.create_index('ix_bookings_room_window', 'bookings', ['room_id', 'start_at', 'end_at'])

    # Storage-level overlap exclusion, backing up the per-resource advisory lock
    if op.get_bind().dialect.name == 'postgresql':
        op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
        op.execute(
            "ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap_pool "
            "EXCLUDE USING gist (organization_id WITH =, pool_resource_id WITH =, "
            "tsrange(start_at, end_at, '[)') WITH &&) WHERE (pool_resource_id IS NOT NULL)"
        )
        op.execute(
            "ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap_ephemeral "
            "EXCLUDE USING gist (organization_id WITH =, ephemeral_resource_id WITH =, "
            "tsrange(start_at, end_at, '[)') WITH &&) WHERE (ephemeral_resource_id IS NOT NULL)"
        )
        op.execute(
            "ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap_room "
            "EXCLUDE USING gist (room_id WITH =, "
            "tsrange(start_at, end_at, '[)') WITH &&) WHERE (room_id IS NOT NULL)"
        )


def downgrade() -> None:
    """Drop all reservation tables"""
    op.drop_table('bookings')
    op.drop_table('meeting_rooms')
    op.drop_table('ephemeral_resources')
    op.drop_table('pool_resources')
    op.drop_table('users')
    op.drop_table('organizations')
