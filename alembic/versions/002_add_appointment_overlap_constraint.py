"""Add exclusion constraint preventing overlapping bookings per professional

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Reject two non-canceled appointments of a professional whose slots intersect."""
    # btree_gist lets the uuid equality take part in a GiST exclusion constraint
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    # Slot length must match SLOT_DURATION_MINUTES
    op.execute(
        """
        ALTER TABLE appointments
        ADD CONSTRAINT appointments_no_overlap
        EXCLUDE USING gist (
            professional_id WITH =,
            tstzrange(scheduled_at, scheduled_at + interval '30 minutes', '[)') WITH &&
        )
        WHERE (status <> 'CANCELED');
        """
    )


def downgrade() -> None:
    """Drop the overlap constraint."""
    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS appointments_no_overlap")
