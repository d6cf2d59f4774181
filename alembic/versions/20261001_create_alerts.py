"""create alerts and alert reports tables"""
from alembic import op
import sqlalchemy as sa

revision = "20261001_create_alerts"
down_revision = None
branch_labels = None
depends_on = None

alert_kind = sa.Enum("traffic", "natural", "security", name="alert_kind")
alert_severity = sa.Enum("low", "medium", "high", name="alert_severity")
report_kind = sa.Enum("confirmation", "update", "resolution", name="report_kind")


def upgrade() -> None:
    op.create_table(
        "alerts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("kind", alert_kind, nullable=False),
        sa.Column("severity", alert_severity, nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("address", sa.String(length=200), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("creator_id", sa.String(length=128), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("longitude >= -180 AND longitude <= 180", name="ck_alerts_longitude_range"),
        sa.CheckConstraint("latitude >= -90 AND latitude <= 90", name="ck_alerts_latitude_range"),
        sa.PrimaryKeyConstraint("id", name="pk_alerts"),
    )
    op.create_index("ix_alerts_creator_id", "alerts", ["creator_id"])
    op.create_index("ix_alerts_kind_severity", "alerts", ["kind", "severity"])
    op.create_index("ix_alerts_created_at", "alerts", ["created_at"])
    op.create_index("ix_alerts_active", "alerts", ["active"])
    op.create_index("ix_alerts_active_expires_at", "alerts", ["active", "expires_at"])
    op.create_index("ix_alerts_latitude_longitude", "alerts", ["latitude", "longitude"])

    op.create_table(
        "alert_reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("alert_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("kind", report_kind, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["alert_id"], ["alerts.id"], name="fk_alert_reports_alert_id_alerts", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_alert_reports"),
        sa.UniqueConstraint("alert_id", "position", name="uq_alert_reports_alert_id_position"),
    )
    op.create_index("ix_alert_reports_alert_id", "alert_reports", ["alert_id"])


def downgrade() -> None:
    op.drop_index("ix_alert_reports_alert_id", table_name="alert_reports")
    op.drop_table("alert_reports")
    for name in (
        "ix_alerts_latitude_longitude",
        "ix_alerts_active_expires_at",
        "ix_alerts_active",
        "ix_alerts_created_at",
        "ix_alerts_kind_severity",
        "ix_alerts_creator_id",
    ):
        op.drop_index(name, table_name="alerts")
    op.drop_table("alerts")
    bind = op.get_bind()
    for enum_type in (report_kind, alert_severity, alert_kind):
        enum_type.drop(bind, checkfirst=True)
