"""reservation overlap exclusion constraint (PostgreSQL)

Revision ID: 0002_reservation_overlap
Revises: 0001_initial
Create Date: 2026-10-19

Active reservations on one car may not share a day. Both ends are
inclusive, so a same-day handover is rejected too. Other dialects rely on
the application-level lock only.
"""

from alembic import op

revision = "0002_reservation_overlap"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

CONSTRAINT = "reservations_no_overlap"

def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        f"""
        ALTER TABLE reservations
        ADD CONSTRAINT {CONSTRAINT}
        EXCLUDE USING gist (
            resource_id WITH =,
            daterange(start_date, end_date, '[]') WITH &&
        )
        WHERE (status <> 'cancelled')
        """
    )

def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute(f"ALTER TABLE reservations DROP CONSTRAINT IF EXISTS {CONSTRAINT}")
