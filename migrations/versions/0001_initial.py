"""Initial migration: users, drivers, rides with unique index for active rides."""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Таблица users
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("phone", sa.String(32), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="passenger"),
        sa.Column("nickname", sa.String(255), nullable=True),
        sa.Column("car_plate", sa.String(32), nullable=True),
        sa.Column("remarks", sa.String(1024), nullable=True),
        sa.Column("verification_code", sa.String(6), nullable=True),
        sa.Column("verification_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_verified", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_phone", "users", ["phone"])
    op.create_check_constraint(
        "chk_users_role", "users", "role IN ('admin', 'driver', 'passenger')"
    )

    # Таблица drivers
    op.create_table(
        "drivers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("car_plate", sa.String(32), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="offline"),
        sa.Column("current_lat", sa.Float, nullable=True),
        sa.Column("current_lng", sa.Float, nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_drivers_status", "drivers", ["status"])
    op.create_check_constraint(
        "chk_driver_status", "drivers", "status IN ('online', 'busy', 'offline')"
    )

    # Таблица rides
    op.create_table(
        "rides",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("passenger_id", sa.String(64), nullable=False),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="waiting_assignment"),
        sa.Column("pickup_lat", sa.Float, nullable=False),
        sa.Column("pickup_lng", sa.Float, nullable=False),
        sa.Column("dropoff_lat", sa.Float, nullable=True),
        sa.Column("dropoff_lng", sa.Float, nullable=True),
        sa.Column("assignment_attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_assignment_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("distance_km", sa.Float, nullable=True),
        sa.Column("duration_minutes", sa.Integer, nullable=True),
        sa.Column("final_price_cents", sa.Integer, nullable=True),
    )
    op.create_index("ix_rides_passenger_id", "rides", ["passenger_id"])
    op.create_index("ix_rides_status", "rides", ["status"])

    # Частичный уникальный индекс: один водитель не может иметь несколько активных поездок
    op.create_index(
        "uq_driver_active_ride",
        "rides",
        ["driver_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('assigned', 'accepted', 'in_progress')")
    )


def downgrade() -> None:
    op.drop_index("uq_driver_active_ride", table_name="rides")
    op.drop_index("ix_rides_status", table_name="rides")
    op.drop_index("ix_rides_passenger_id", table_name="rides")
    op.drop_table("rides")
    op.drop_index("ix_drivers_status", table_name="drivers")
    op.drop_table("drivers")
    op.drop_index("ix_users_phone", table_name="users")
    op.drop_table("users")
