"""Initial schema: users, drivers, vehicles, rides and the notification outbox.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column(
            "role",
            sa.Enum(
                "USER",
                "DRIVER",
                "DEPARTMENT_HEAD",
                "PROJECT_MANAGER",
                "ADMIN",
                name="userrole",
            ),
            nullable=False,
        ),
        sa.Column(
            "department",
            sa.Enum(
                "MECHANICAL", "CIVIL", "ELECTRICAL", "HSEQ", "HR", name="department"
            ),
            nullable=True,
        ),
        sa.Column("contact", sa.String(40), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_users_role_department", "users", ["role", "department"])

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("full_name", sa.String(120), nullable=False),
        sa.Column("contact", sa.String(40), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("nic", sa.String(20), unique=True, nullable=False),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "BUSY", "OFFLINE", name="driverstatus"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("current_lat", sa.Float, nullable=True),
        sa.Column("current_lng", sa.Float, nullable=True),
        sa.Column("current_h3_cell", sa.String(20), nullable=True),
        sa.Column("location_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_distance", sa.Float, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_drivers_status", "drivers", ["status"])
    op.create_index("idx_drivers_cell", "drivers", ["current_h3_cell"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("vehicle_number", sa.String(20), unique=True, nullable=False),
        sa.Column("make", sa.String(60), nullable=False),
        sa.Column("model", sa.String(60), nullable=False),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column(
            "status",
            sa.Enum("AVAILABLE", "BUSY", "MAINTENANCE", name="vehiclestatus"),
            nullable=False,
        ),
        sa.Column(
            "current_driver_id",
            sa.Integer,
            sa.ForeignKey("drivers.id"),
            nullable=True,
        ),
        sa.Column("total_distance", sa.Float, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_vehicles_status", "vehicles", ["status"])

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "requester_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=True
        ),
        sa.Column("start_lat", sa.Float, nullable=False),
        sa.Column("start_lng", sa.Float, nullable=False),
        sa.Column("start_address", sa.String(255), nullable=False),
        sa.Column("end_lat", sa.Float, nullable=False),
        sa.Column("end_lng", sa.Float, nullable=False),
        sa.Column("end_address", sa.String(255), nullable=False),
        sa.Column("actual_start_lat", sa.Float, nullable=True),
        sa.Column("actual_start_lng", sa.Float, nullable=True),
        sa.Column("actual_end_lat", sa.Float, nullable=True),
        sa.Column("actual_end_lng", sa.Float, nullable=True),
        sa.Column("actual_end_address", sa.String(255), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "PENDING",
                "APPROVED",
                "ASSIGNED",
                "ONGOING",
                "COMPLETED",
                "CANCELLED",
                name="ridestatus",
            ),
            nullable=False,
        ),
        sa.Column(
            "approval_status",
            sa.Enum("PENDING", "APPROVED", "REJECTED", name="approvalstatus"),
            nullable=False,
        ),
        sa.Column(
            "department_head_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column(
            "project_manager_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True
        ),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
        sa.Column("distance", sa.Float, nullable=True),
        sa.Column("rating", sa.Integer, nullable=True),
        sa.Column("requested_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_requester", "rides", ["requester_id"])
    op.create_index("idx_rides_driver", "rides", ["driver_id"])
    op.create_index("idx_rides_department_head", "rides", ["department_head_id"])
    op.create_index("idx_rides_project_manager", "rides", ["project_manager_id"])

    # ── notifications (outbox) ────────────────────────────────────────
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("recipient_id", sa.Integer, nullable=False),
        sa.Column(
            "recipient_type",
            sa.Enum("USER", "DRIVER", name="recipienttype"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column(
            "type",
            sa.Enum(
                "RIDE_REQUEST",
                "RIDE_APPROVED",
                "RIDE_REJECTED",
                "RIDE_ASSIGNED",
                "RIDE_STARTED",
                "RIDE_COMPLETED",
                "RIDE_CANCELLED",
                name="notificationtype",
            ),
            nullable=False,
        ),
        sa.Column("data", sa.JSON, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_notifications_recipient",
        "notifications",
        ["recipient_type", "recipient_id", "is_read"],
    )
    op.create_index(
        "idx_notifications_outbox", "notifications", ["dispatched_at", "attempts"]
    )


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("rides")
    op.drop_table("vehicles")
    op.drop_table("drivers")
    op.drop_table("users")
    for enum_name in (
        "notificationtype",
        "recipienttype",
        "approvalstatus",
        "ridestatus",
        "vehiclestatus",
        "driverstatus",
        "department",
        "userrole",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
