"""exclusion constraint on overlapping active bookings

Revision ID: 0002_booking_overlap_exclusion
Revises: 0001_initial
Create Date: 2026-10-19
"""

from alembic import op

revision = "0002_booking_overlap_exclusion"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

# Postgres only. SQLite serializes writers with BEGIN IMMEDIATE instead.

def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_room_active_overlap "
        "EXCLUDE USING gist (room_id WITH =, tstzrange(check_in, check_out, '[)') WITH &&) "
        "WHERE (status IN ('PENDING', 'CONFIRMED'))"
    )

def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_room_active_overlap")
