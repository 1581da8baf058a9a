"""
Initial migration - Create report tables

Revision ID: 001_initial
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all tables."""

    report_status = sa.Enum('in-review', 'approved', name='report_status')

    op.create_table(
        'reports',
        sa.Column('id', sa.String(32), primary_key=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('location_name', sa.String(500)),
        sa.Column('share_url', sa.String(500)),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('status', report_status, nullable=False, server_default='in-review'),
        sa.Column('vote_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_index('idx_report_status_created', 'reports', ['status', 'created_at'])
    op.create_index('idx_report_lat_lon', 'reports', ['latitude', 'longitude'])

    op.create_table(
        'site_counters',
        sa.Column('name', sa.String(50), primary_key=True),
        sa.Column('value', sa.Integer(), nullable=False, server_default='0'),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('site_counters')
    op.drop_table('reports')
    sa.Enum(name='report_status').drop(op.get_bind(), checkfirst=True)
