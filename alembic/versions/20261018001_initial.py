"""Initial KinetoFlow schema."""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20261018001"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLE = sa.Enum(
    "PLATFORM_ADMIN", "TENANT_ADMIN", "MEDIC", "PATIENT", name="user_role"
)
APPOINTMENT_STATUS = sa.Enum(
    "SCHEDULED",
    "COMPLETED",
    "CANCELLED_BY_PATIENT",
    "CANCELLED_BY_MEDIC",
    "NO_SHOW",
    name="appointment_status",
)
DAY_OF_WEEK = sa.Enum(
    "MONDAY",
    "TUESDAY",
    "WEDNESDAY",
    "THURSDAY",
    "FRIDAY",
    "SATURDAY",
    "SUNDAY",
    name="day_of_week",
)


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_companies"),
        sa.UniqueConstraint("name", name="uq_companies_name"),
    )

    op.create_table(
        "users",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", USER_ROLE, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("tenant_id", _uuid(), nullable=True),
        sa.Column("assigned_medic_id", _uuid(), nullable=True),
        sa.Column("invited_by_id", _uuid(), nullable=True),
        sa.Column("invitation_token", sa.String(length=128), nullable=True),
        sa.Column("invitation_expires_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("invitation_token", name="uq_users_invitation_token"),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["companies.id"], name="fk_users_tenant_id_companies", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["assigned_medic_id"],
            ["users.id"],
            name="fk_users_assigned_medic_id_users",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["invited_by_id"], ["users.id"], name="fk_users_invited_by_id_users", ondelete="SET NULL"
        ),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"], unique=False)
    op.create_index("ix_users_assigned_medic_id", "users", ["assigned_medic_id"], unique=False)

    op.create_table(
        "services",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.PrimaryKeyConstraint("id", name="pk_services"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_services_tenant_id_name"),
        sa.CheckConstraint("duration_minutes >= 1", name="ck_services_duration_positive"),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["companies.id"], name="fk_services_tenant_id_companies", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_services_tenant_id", "services", ["tenant_id"], unique=False)

    op.create_table(
        "packages",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", _uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.PrimaryKeyConstraint("id", name="pk_packages"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_packages_tenant_id_name"),
        sa.ForeignKeyConstraint(
            ["tenant_id"], ["companies.id"], name="fk_packages_tenant_id_companies", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_packages_tenant_id", "packages", ["tenant_id"], unique=False)

    op.create_table(
        "package_items",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("package_id", _uuid(), nullable=False),
        sa.Column("service_id", _uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_package_items"),
        sa.UniqueConstraint(
            "package_id", "service_id", name="uq_package_items_package_id_service_id"
        ),
        sa.CheckConstraint("quantity >= 1", name="ck_package_items_quantity_positive"),
        sa.ForeignKeyConstraint(
            ["package_id"],
            ["packages.id"],
            name="fk_package_items_package_id_packages",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["services.id"],
            name="fk_package_items_service_id_services",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_package_items_package_id", "package_items", ["package_id"], unique=False)
    op.create_index("ix_package_items_service_id", "package_items", ["service_id"], unique=False)

    op.create_table(
        "patient_plans",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("patient_id", _uuid(), nullable=False),
        sa.Column("assigned_by_id", _uuid(), nullable=True),
        sa.Column("tenant_id", _uuid(), nullable=False),
        sa.Column("originating_package_id", _uuid(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("assigned_at", sa.DateTime(), nullable=False, server_default=sa.text("now()")),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_patient_plans"),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["users.id"], name="fk_patient_plans_patient_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["assigned_by_id"],
            ["users.id"],
            name="fk_patient_plans_assigned_by_id_users",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["companies.id"],
            name="fk_patient_plans_tenant_id_companies",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["originating_package_id"],
            ["packages.id"],
            name="fk_patient_plans_originating_package_id_packages",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_patient_plans_patient_id", "patient_plans", ["patient_id"], unique=False)
    op.create_index("ix_patient_plans_tenant_id", "patient_plans", ["tenant_id"], unique=False)

    op.create_table(
        "plan_items",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("plan_id", _uuid(), nullable=False),
        sa.Column("service_id", _uuid(), nullable=False),
        sa.Column("total_quantity", sa.Integer(), nullable=False),
        sa.Column("remaining_quantity", sa.Integer(), nullable=False),
        sa.Column("price_per_unit", sa.Numeric(10, 2), nullable=True),
        sa.Column("is_item_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.PrimaryKeyConstraint("id", name="pk_plan_items"),
        sa.CheckConstraint("total_quantity >= 1", name="ck_plan_items_total_positive"),
        sa.CheckConstraint(
            "remaining_quantity >= 0", name="ck_plan_items_remaining_non_negative"
        ),
        sa.CheckConstraint(
            "remaining_quantity <= total_quantity", name="ck_plan_items_remaining_within_total"
        ),
        sa.ForeignKeyConstraint(
            ["plan_id"],
            ["patient_plans.id"],
            name="fk_plan_items_plan_id_patient_plans",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["services.id"],
            name="fk_plan_items_service_id_services",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_plan_items_plan_id", "plan_items", ["plan_id"], unique=False)
    op.create_index("ix_plan_items_service_id", "plan_items", ["service_id"], unique=False)

    op.create_table(
        "appointments",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", _uuid(), nullable=False),
        sa.Column("patient_id", _uuid(), nullable=False),
        sa.Column("medic_id", _uuid(), nullable=False),
        sa.Column("service_id", _uuid(), nullable=False),
        sa.Column("plan_item_id", _uuid(), nullable=True),
        sa.Column("status", APPOINTMENT_STATUS, nullable=False, server_default="SCHEDULED"),
        sa.Column("scheduled_start", sa.DateTime(), nullable=False),
        sa.Column("scheduled_end", sa.DateTime(), nullable=False),
        sa.Column("actual_start", sa.DateTime(), nullable=True),
        sa.Column("actual_end", sa.DateTime(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "session_consumed", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.PrimaryKeyConstraint("id", name="pk_appointments"),
        sa.CheckConstraint(
            "scheduled_end > scheduled_start", name="ck_appointments_end_after_start"
        ),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["companies.id"],
            name="fk_appointments_tenant_id_companies",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["patient_id"], ["users.id"], name="fk_appointments_patient_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["medic_id"], ["users.id"], name="fk_appointments_medic_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["service_id"],
            ["services.id"],
            name="fk_appointments_service_id_services",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["plan_item_id"],
            ["plan_items.id"],
            name="fk_appointments_plan_item_id_plan_items",
            ondelete="SET NULL",
        ),
    )
    for column in (
        "tenant_id",
        "patient_id",
        "medic_id",
        "service_id",
        "plan_item_id",
        "scheduled_start",
        "scheduled_end",
    ):
        op.create_index(f"ix_appointments_{column}", "appointments", [column], unique=False)

    op.create_table(
        "time_blocks",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("tenant_id", _uuid(), nullable=False),
        sa.Column("medic_id", _uuid(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_time_blocks"),
        sa.CheckConstraint("end_time > start_time", name="ck_time_blocks_end_after_start"),
        sa.ForeignKeyConstraint(
            ["tenant_id"],
            ["companies.id"],
            name="fk_time_blocks_tenant_id_companies",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["medic_id"], ["users.id"], name="fk_time_blocks_medic_id_users", ondelete="CASCADE"
        ),
    )
    op.create_index("ix_time_blocks_tenant_id", "time_blocks", ["tenant_id"], unique=False)
    op.create_index("ix_time_blocks_medic_id", "time_blocks", ["medic_id"], unique=False)

    op.create_table(
        "medic_working_hours",
        sa.Column("id", _uuid(), nullable=False),
        *_timestamps(),
        sa.Column("medic_id", _uuid(), nullable=False),
        sa.Column("day_of_week", DAY_OF_WEEK, nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_medic_working_hours"),
        sa.UniqueConstraint(
            "medic_id", "day_of_week", name="uq_medic_working_hours_medic_id_day_of_week"
        ),
        sa.CheckConstraint(
            "end_time > start_time", name="ck_medic_working_hours_end_after_start"
        ),
        sa.ForeignKeyConstraint(
            ["medic_id"],
            ["users.id"],
            name="fk_medic_working_hours_medic_id_users",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_medic_working_hours_medic_id", "medic_working_hours", ["medic_id"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_medic_working_hours_medic_id", table_name="medic_working_hours")
    op.drop_table("medic_working_hours")
    op.drop_index("ix_time_blocks_medic_id", table_name="time_blocks")
    op.drop_index("ix_time_blocks_tenant_id", table_name="time_blocks")
    op.drop_table("time_blocks")
    for column in (
        "scheduled_end",
        "scheduled_start",
        "plan_item_id",
        "service_id",
        "medic_id",
        "patient_id",
        "tenant_id",
    ):
        op.drop_index(f"ix_appointments_{column}", table_name="appointments")
    op.drop_table("appointments")
    op.drop_index("ix_plan_items_service_id", table_name="plan_items")
    op.drop_index("ix_plan_items_plan_id", table_name="plan_items")
    op.drop_table("plan_items")
    op.drop_index("ix_patient_plans_tenant_id", table_name="patient_plans")
    op.drop_index("ix_patient_plans_patient_id", table_name="patient_plans")
    op.drop_table("patient_plans")
    op.drop_index("ix_package_items_service_id", table_name="package_items")
    op.drop_index("ix_package_items_package_id", table_name="package_items")
    op.drop_table("package_items")
    op.drop_index("ix_packages_tenant_id", table_name="packages")
    op.drop_table("packages")
    op.drop_index("ix_services_tenant_id", table_name="services")
    op.drop_table("services")
    op.drop_index("ix_users_assigned_medic_id", table_name="users")
    op.drop_index("ix_users_tenant_id", table_name="users")
    op.drop_table("users")
    op.drop_table("companies")

    bind = op.get_bind()
    DAY_OF_WEEK.drop(bind, checkfirst=True)
    APPOINTMENT_STATUS.drop(bind, checkfirst=True)
    USER_ROLE.drop(bind, checkfirst=True)
