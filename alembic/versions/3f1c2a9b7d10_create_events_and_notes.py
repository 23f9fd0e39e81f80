"""Create events and notes tables

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2026-10-19 10:12:41.508213

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


PERCEPTIONS = ('Positive', 'Neutral', 'Negative')
VERIFICATION_STATUSES = (
    'Verified True',
    'Verified False',
    'Pending',
    'True without Verification',
    'Question Mark',
    'Closed - Past/Unverified',
)
NOTE_STATUSES = ('Open', 'Needs Watch', 'Resolved')


def _enum(name, values):
    return sa.Enum(*values, name=name, native_enum=False, length=32)


def upgrade():
    op.create_table(
        'events',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('owner_id', sa.String(255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(255), nullable=True),
        sa.Column('perception', _enum('perception', PERCEPTIONS), nullable=False, server_default='Neutral'),
        sa.Column(
            'verification_status',
            _enum('verificationstatus', VERIFICATION_STATUSES),
            nullable=False,
            server_default='Pending'
        ),
        sa.Column('intensity', sa.Integer(), nullable=False),
        sa.Column('importance', sa.Integer(), nullable=False),
        sa.Column('emotions', sa.JSON(), nullable=False),
        sa.Column('physical_sensations', sa.JSON(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        # Deliberately no foreign key: sub-events survive their parent's deletion
        sa.Column('parent_event_id', sa.Uuid(), nullable=True),
        sa.Column('is_demo', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_events_owner_id', 'events', ['owner_id'])
    op.create_index('ix_events_occurred_at', 'events', ['occurred_at'])
    op.create_index('ix_events_parent_event_id', 'events', ['parent_event_id'])
    op.create_index('idx_owner_occurred', 'events', ['owner_id', 'occurred_at'])
    op.create_index('idx_owner_created', 'events', ['owner_id', 'created_at'])

    op.create_table(
        'notes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'event_id',
            sa.Uuid(),
            sa.ForeignKey('events.id', ondelete='CASCADE'),
            nullable=False
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('title', sa.String(500), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('perception', _enum('perception', PERCEPTIONS), nullable=False, server_default='Neutral'),
        sa.Column('importance', sa.Integer(), nullable=False),
        sa.Column('status', _enum('notestatus', NOTE_STATUSES), nullable=False, server_default='Open'),
        sa.Column('facts', sa.Text(), nullable=False, server_default=''),
        sa.Column('assumptions', sa.Text(), nullable=False, server_default=''),
        sa.Column('patterns', sa.Text(), nullable=False, server_default=''),
        sa.Column('actions', sa.Text(), nullable=False, server_default=''),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('is_demo', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_notes_event_id', 'notes', ['event_id'])


def downgrade():
    op.drop_index('ix_notes_event_id', 'notes')
    op.drop_table('notes')

    op.drop_index('idx_owner_created', 'events')
    op.drop_index('idx_owner_occurred', 'events')
    op.drop_index('ix_events_parent_event_id', 'events')
    op.drop_index('ix_events_occurred_at', 'events')
    op.drop_index('ix_events_owner_id', 'events')
    op.drop_table('events')
