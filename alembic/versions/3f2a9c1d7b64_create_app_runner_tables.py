"""create app runner tables

Revision ID: 3f2a9c1d7b64
Revises:
Create Date: 2026-10-12 10:05:31.482117

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b64"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "resources",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("space_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_resources_space_id", "resources", ["space_id"])

    op.create_table(
        "apps",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("folder_id", sa.String(length=36), nullable=False),
        sa.Column(
            "resource_id",
            sa.String(length=36),
            sa.ForeignKey("resources.id"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("inputs", sa.JSON(), nullable=False),
        sa.Column("http_method", sa.String(length=10), nullable=False, server_default="GET"),
        sa.Column("url_path", sa.Text(), nullable=True),
        sa.Column("url_parameters", sa.JSON(), nullable=False),
        sa.Column("headers", sa.JSON(), nullable=False),
        sa.Column("body", sa.JSON(), nullable=False),
        sa.Column(
            "use_dynamic_json_body", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("use_json_body", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sql_config", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("idx_apps_folder_id", "apps", ["folder_id"])
    op.create_index("idx_apps_resource_id", "apps", ["resource_id"])

    op.create_table(
        "runs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("app_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("input_values", sa.JSON(), nullable=False),
        sa.Column("executable_request", sa.JSON(), nullable=True),
        sa.Column("response", sa.JSON(), nullable=True),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("idx_runs_app_id_created_at", "runs", ["app_id", "created_at"])
    op.create_index("idx_runs_status", "runs", ["status"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("event_id", sa.String(length=36), nullable=False, unique=True),
        sa.Column("event_type", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=20), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("event_data", sa.Text(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("actor_user_id", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_events_entity", "events", ["entity_type", "entity_id"])
    op.create_index("idx_events_occurred_at", "events", ["occurred_at"])


def downgrade() -> None:
    op.drop_index("idx_events_occurred_at", table_name="events")
    op.drop_index("idx_events_entity", table_name="events")
    op.drop_table("events")

    op.drop_index("idx_runs_status", table_name="runs")
    op.drop_index("idx_runs_app_id_created_at", table_name="runs")
    op.drop_table("runs")

    op.drop_index("idx_apps_resource_id", table_name="apps")
    op.drop_index("idx_apps_folder_id", table_name="apps")
    op.drop_table("apps")

    op.drop_index("idx_resources_space_id", table_name="resources")
    op.drop_table("resources")
