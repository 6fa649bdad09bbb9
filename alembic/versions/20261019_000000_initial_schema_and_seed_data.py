"""Initial schema and seed data for sitedeploy

Revision ID: 20261019_000000
Revises: None
Create Date: 2026-10-19 00:00:00.000000

This is the initial migration that creates all necessary tables and seeds default data
for the sitedeploy service. This includes:
- Users, sites and their build histories
- Encrypted environment variables
- Build groups and their site links
- Runtime parameters with their default values

Revision format: YYYYMMDD_HHMMSS_description

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


DEFAULT_PARAMETERS = [
    ("path_project", "/var/www/html", "path", "Base path for all projects and sites"),
    ("dev_email", "dev@example.com", "email", "Default developer email for notifications"),
    ("git_auto_pull", "true", "boolean", "Enable automatic git pull during build process"),
    ("npm_install_on_build", "true", "boolean", "Enable npm install during build process"),
    ("npm_run_build", "true", "boolean", "Enable npm run build during build process"),
    ("default_pm2_port_start", "3000", "integer", "Default starting port for PM2 applications"),
    (
        "APP_ENV_BUILD",
        "",
        "string",
        'Source .env file to copy from: "dev" (.env.develop), "prod" (.env.prod), else .env.example',
    ),
    (
        "ENV_SITE_NAME_KEYWORD",
        "SITE_NAME",
        "string",
        "Reserved keyword for site-specific env placeholders (e.g. ###SITE_NAME###API_KEY)",
    ),
    ("LOG_PM2_PATH", "/var/www/html/log_pm2", "path", "Path to PM2 log files directory for viewing site logs"),
]


def upgrade() -> None:
    """Create all tables and seed initial data."""

    # Create users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_users_email", "email", unique=True),
    )

    # Create my_site table
    op.create_table(
        "my_site",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("site_name", sa.String(255), nullable=False),
        sa.Column("path_source_code", sa.String(1024), nullable=False),
        sa.Column("sh_content_dir", sa.String(1024), nullable=False),
        sa.Column("path_log", sa.String(1024), nullable=False),
        sa.Column("port_pm2", sa.Integer(), nullable=True),
        sa.Column("api_endpoint_url", sa.String(1024), nullable=True),
        sa.Column("is_generate_env", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_user_build", sa.Integer(), nullable=True),
        sa.Column("last_build", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_build_success", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_build_fail", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_my_site_site_name", "site_name", unique=True),
    )

    # Create build_histories table
    op.create_table(
        "build_histories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("site_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="queued"),
        sa.Column("output_log", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["site_id"], ["my_site.id"], ondelete="CASCADE"),
        sa.Index("ix_build_histories_site_id", "site_id"),
        sa.Index("ix_build_histories_user_id", "user_id"),
        sa.Index("ix_build_histories_status", "status"),
        sa.Index("ix_build_histories_created_at", "created_at"),
    )

    # Create env_variables table
    op.create_table(
        "env_variables",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("variable_name", sa.String(255), nullable=False),
        sa.Column("variable_value", sa.Text(), nullable=False),
        sa.Column("group_name", sa.String(255), nullable=True),
        sa.Column("my_site_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["my_site_id"], ["my_site.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("variable_name", "group_name", "my_site_id", name="uq_env_variables_name_group_site"),
        sa.Index("ix_env_variables_variable_name", "variable_name"),
        sa.Index("ix_env_variables_group_name", "group_name"),
        sa.Index("ix_env_variables_my_site_id", "my_site_id"),
    )

    # Create build_groups table
    op.create_table(
        "build_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_build_groups_name", "name", unique=True),
    )

    # Create build_group_sites table
    op.create_table(
        "build_group_sites",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("build_group_id", sa.Integer(), nullable=False),
        sa.Column("my_site_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["build_group_id"], ["build_groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["my_site_id"], ["my_site.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("build_group_id", "my_site_id", name="uq_build_group_sites_pair"),
        sa.Index("ix_build_group_sites_build_group_id", "build_group_id"),
        sa.Index("ix_build_group_sites_my_site_id", "my_site_id"),
    )

    # Create parameters table
    parameters = op.create_table(
        "parameters",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column("type", sa.String(32), nullable=False, server_default="string"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_parameters_key", "key", unique=True),
    )

    # Seed default parameters
    op.bulk_insert(
        parameters,
        [
            {"key": key, "value": value, "type": type_, "description": description}
            for key, value, type_, description in DEFAULT_PARAMETERS
        ],
    )


def downgrade() -> None:
    """Drop all tables created in upgrade."""
    op.drop_table("parameters")
    op.drop_table("build_group_sites")
    op.drop_table("build_groups")
    op.drop_table("env_variables")
    op.drop_table("build_histories")
    op.drop_table("my_site")
    op.drop_table("users")
