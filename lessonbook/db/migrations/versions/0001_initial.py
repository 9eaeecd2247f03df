from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

BOOKING_STATUSES = (
    "pending",
    "confirmed",
    "awaiting_payment",
    "paid",
    "completed",
    "cancelled",
    "rejected",
    "expired",
)
PAYMENT_STATUSES = ("none", "awaiting_payment", "completed", "refunded", "expired")


def upgrade() -> None:
    op.create_table(
        "trainer_settings",
        sa.Column("trainer_id", sa.String(length=64), primary_key=True),
        sa.Column("is_enabled", sa.Boolean(), server_default=sa.true()),
        sa.Column("price_per_hour", sa.Numeric(10, 2), nullable=False),
        sa.Column("min_duration", sa.Integer(), nullable=False),
        sa.Column("max_duration", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text()),
    )

    op.create_table(
        "time_slots",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("trainer_id", sa.String(length=64), index=True),
        sa.Column("trainer_name", sa.String(length=255)),
        sa.Column("start_time", sa.DateTime(timezone=True), index=True),
        sa.Column("duration_minutes", sa.Integer()),
        sa.Column("price", sa.Numeric(10, 2)),
        sa.Column("is_booked", sa.Boolean(), server_default=sa.false()),
        sa.Column("booked_by_user_id", sa.String(length=64)),
        sa.Column("booking_id", sa.String(length=36)),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("duration_minutes > 0", name="ck_time_slot_duration_positive"),
    )

    booking_status = sa.Enum(*BOOKING_STATUSES, name="bookingstatus")
    payment_status = sa.Enum(*PAYMENT_STATUSES, name="paymentstatus")

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("booking_number", sa.String(length=32), index=True),
        sa.Column("trainer_id", sa.String(length=64), index=True),
        sa.Column("trainer_name", sa.String(length=255)),
        sa.Column("user_id", sa.String(length=64), index=True),
        sa.Column("user_name", sa.String(length=255)),
        sa.Column("user_email", sa.String(length=255)),
        sa.Column("slot_id", sa.String(length=36)),
        sa.Column("requested_date", sa.DateTime(timezone=True)),
        sa.Column("confirmed_date", sa.DateTime(timezone=True)),
        sa.Column("duration_minutes", sa.Integer()),
        sa.Column("price", sa.Numeric(10, 2)),
        sa.Column("notes", sa.Text()),
        sa.Column("status", booking_status, server_default="pending"),
        sa.Column("payment_status", payment_status, server_default="none"),
        sa.Column("payment_deadline", sa.DateTime(timezone=True)),
        sa.Column("payment_order_id", sa.String(length=128), index=True),
        sa.Column("payment_transaction_id", sa.String(length=128)),
        sa.Column("payment_link", sa.String(length=512)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("needs_manual_refund", sa.Boolean(), server_default=sa.false()),
        sa.Column("externally_billed", sa.Boolean(), server_default=sa.false()),
        sa.Column("reminder_sent_at", sa.DateTime(timezone=True)),
        sa.Column("trainer_revenue", sa.Numeric(10, 2)),
        sa.Column("platform_fee", sa.Numeric(10, 2)),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("booking_number", name="uq_booking_number"),
    )

    op.create_table(
        "booking_messages",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "booking_id",
            sa.String(length=36),
            sa.ForeignKey("bookings.id", ondelete="CASCADE"),
            index=True,
        ),
        sa.Column("position", sa.Integer()),
        sa.Column("sender_id", sa.String(length=64)),
        sa.Column("sender_name", sa.String(length=255)),
        sa.Column("content", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True)),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false()),
    )


def downgrade() -> None:
    op.drop_table("booking_messages")
    op.drop_table("bookings")
    op.drop_table("time_slots")
    op.drop_table("trainer_settings")
    sa.Enum(name="paymentstatus").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="bookingstatus").drop(op.get_bind(), checkfirst=True)
