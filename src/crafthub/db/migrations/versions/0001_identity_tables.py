"""Identity tables: users, customer/artisan sub-profiles, one-time codes

Learn: Every identity key (email, phone, google_id, github_id) carries a
unique constraint. Two concurrent first logins for the same person race
on these constraints; the loser sees an IntegrityError and re-resolves.

Enums are stored as VARCHAR(20) + CHECK (native_enum=False) so the same
migration runs on PostgreSQL and SQLite.

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


USER_ROLE = sa.Enum(
    'CUSTOMER', 'ARTISAN', 'ADMIN',
    name='userrole', native_enum=False, length=20,
)
AUTH_PROVIDER = sa.Enum(
    'EMAIL', 'PHONE', 'OAUTH_GOOGLE', 'OAUTH_GITHUB',
    name='authprovider', native_enum=False, length=20,
)
OTP_PURPOSE = sa.Enum(
    'SIGNUP', 'LOGIN', 'VERIFICATION',
    name='otppurpose', native_enum=False, length=20,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ─── users ───────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('phone', sa.String(32), nullable=True, unique=True),
        sa.Column('google_id', sa.String(255), nullable=True, unique=True),
        sa.Column('github_id', sa.String(255), nullable=True, unique=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('role', USER_ROLE, nullable=False),
        sa.Column('auth_provider', AUTH_PROVIDER, nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=True),
        sa.Column('is_phone_verified', sa.Boolean(), nullable=True),
        sa.Column('profile_complete', sa.Boolean(), nullable=True),
        sa.Column('avatar', sa.String(1024), nullable=True),
        sa.Column('password_hash', sa.String(255), nullable=True),
        *_timestamps(),
    )

    # ─── sub-profiles ────────────────────────────────────
    op.create_table(
        'customers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False, unique=True,
        ),
        sa.Column('preferences', sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'artisans',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=False, unique=True,
        ),
        sa.Column('skills', sa.JSON(), nullable=True),
        sa.Column('experience', sa.Integer(), nullable=True),
        sa.Column('portfolio', sa.JSON(), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('is_profile_complete', sa.Boolean(), nullable=True),
        sa.Column('is_online', sa.Boolean(), nullable=True),
        sa.Column('location_tracking', sa.Boolean(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('last_seen', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # ─── one-time codes ──────────────────────────────────
    op.create_table(
        'otp_codes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('identifier', sa.String(255), nullable=False),
        sa.Column('code', sa.String(6), nullable=False),
        sa.Column('purpose', OTP_PURPOSE, nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('attempts', sa.Integer(), nullable=True),
        sa.Column('is_used', sa.Boolean(), nullable=True),
        sa.Column(
            'user_id', sa.Uuid(),
            sa.ForeignKey('users.id', ondelete='CASCADE'),
            nullable=True,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_otp_codes_identifier_used', 'otp_codes', ['identifier', 'is_used'])


def downgrade() -> None:
    op.drop_index('ix_otp_codes_identifier_used', table_name='otp_codes')
    op.drop_table('otp_codes')
    op.drop_table('artisans')
    op.drop_table('customers')
    op.drop_table('users')
