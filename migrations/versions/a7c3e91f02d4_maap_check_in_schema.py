"""maap_check_in_schema

Create the MAAP directory, catalog, tenure, check-in, snapshot,
observable-moment and audit tables.

One-open-row invariants are partial unique indexes:
    - assignment_tenures / employment_tenures: WHERE end_date IS NULL
    - *_check_ins: WHERE official_check_in_completed_at IS NULL

Revision ID: a7c3e91f02d4
Revises:
Create Date: 2026-10-19 09:12:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a7c3e91f02d4"
down_revision = None
branch_labels = None
depends_on = None


def _partial_unique(name, table, columns, where):
    op.create_index(
        name, table, columns,
        unique=True,
        postgresql_where=sa.text(where),
        sqlite_where=sa.text(where),
    )


def _check_in_columns():
    """Columns shared by the three check-in tables."""
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("teammate_id", sa.Integer(), nullable=False),
        sa.Column("check_in_started_on", sa.Date(), nullable=False),
        sa.Column("employee_private_notes", sa.Text(), nullable=True),
        sa.Column("employee_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_private_notes", sa.Text(), nullable=True),
        sa.Column("manager_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_completed_by_id", sa.Integer(), nullable=True),
        sa.Column("shared_notes", sa.Text(), nullable=True),
        sa.Column("official_check_in_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finalized_by_id", sa.Integer(), nullable=True),
        sa.Column("maap_snapshot_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["teammate_id"], ["teammates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["manager_completed_by_id"], ["people.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["finalized_by_id"], ["people.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["maap_snapshot_id"], ["maap_snapshots.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    ]


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    # ── Directory ────────────────────────────────────────────────────────
    if "organizations" not in existing_tables:
        op.create_table(
            "organizations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False, server_default="company"),
            sa.Column("parent_id", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["parent_id"], ["organizations.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )

    if "people" not in existing_tables:
        op.create_table(
            "people",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("full_name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=200), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("email"),
        )

    if "teammates" not in existing_tables:
        op.create_table(
            "teammates",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("person_id", sa.Integer(), nullable=False),
            sa.Column("organization_id", sa.Integer(), nullable=False),
            sa.Column("first_employed_at", sa.Date(), nullable=True),
            sa.Column("last_terminated_at", sa.Date(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["person_id"], ["people.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("person_id", "organization_id", name="uq_teammate_person_org"),
        )
        op.create_index("ix_teammates_organization_id", "teammates", ["organization_id"])

    # ── Catalog ──────────────────────────────────────────────────────────
    if "positions" not in existing_tables:
        op.create_table(
            "positions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("level", sa.String(length=20), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_positions_company_id", "positions", ["company_id"])

    if "seats" not in existing_tables:
        op.create_table(
            "seats",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("position_id", sa.Integer(), nullable=True),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("state", sa.String(length=20), nullable=False, server_default="open"),
            sa.ForeignKeyConstraint(["company_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["position_id"], ["positions.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_seats_company_id", "seats", ["company_id"])

    if "assignments" not in existing_tables:
        op.create_table(
            "assignments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("tagline", sa.String(length=500), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["company_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_assignments_company_id", "assignments", ["company_id"])

    for table in ("abilities", "aspirations"):
        if table in existing_tables:
            continue
        columns = [
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("organization_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
        ]
        if table == "aspirations":
            columns.append(sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"))
        op.create_table(
            table,
            *columns,
            sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(f"ix_{table}_organization_id", table, ["organization_id"])

    # ── Tenures ──────────────────────────────────────────────────────────
    if "assignment_tenures" not in existing_tables:
        op.create_table(
            "assignment_tenures",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("teammate_id", sa.Integer(), nullable=False),
            sa.Column("assignment_id", sa.Integer(), nullable=False),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("anticipated_energy_percentage", sa.Integer(), nullable=True),
            sa.Column("official_rating", sa.String(length=20), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["teammate_id"], ["teammates.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["assignment_id"], ["assignments.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_assignment_tenures_teammate_assignment", "assignment_tenures",
            ["teammate_id", "assignment_id"],
        )
        _partial_unique(
            "uq_assignment_tenures_one_open", "assignment_tenures",
            ["teammate_id", "assignment_id"], "end_date IS NULL",
        )

    if "employment_tenures" not in existing_tables:
        op.create_table(
            "employment_tenures",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("teammate_id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("position_id", sa.Integer(), nullable=False),
            sa.Column("manager_id", sa.Integer(), nullable=True),
            sa.Column("seat_id", sa.Integer(), nullable=True),
            sa.Column("employment_type", sa.String(length=20), nullable=False, server_default="full_time"),
            sa.Column("start_date", sa.Date(), nullable=False),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("official_position_rating", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
            sa.ForeignKeyConstraint(["teammate_id"], ["teammates.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["company_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["position_id"], ["positions.id"], ondelete="RESTRICT"),
            sa.ForeignKeyConstraint(["manager_id"], ["teammates.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["seat_id"], ["seats.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_employment_tenures_teammate_company", "employment_tenures",
            ["teammate_id", "company_id"],
        )
        _partial_unique(
            "uq_employment_tenures_one_open", "employment_tenures",
            ["teammate_id", "company_id"], "end_date IS NULL",
        )

    if "teammate_milestones" not in existing_tables:
        op.create_table(
            "teammate_milestones",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("teammate_id", sa.Integer(), nullable=False),
            sa.Column("ability_id", sa.Integer(), nullable=False),
            sa.Column("milestone_level", sa.Integer(), nullable=False),
            sa.Column("certified_by_id", sa.Integer(), nullable=True),
            sa.Column("attained_at", sa.Date(), nullable=False),
            sa.ForeignKeyConstraint(["teammate_id"], ["teammates.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["ability_id"], ["abilities.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["certified_by_id"], ["people.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint(
                "teammate_id", "ability_id", "milestone_level", name="uq_teammate_milestone_level",
            ),
        )
        op.create_index("ix_teammate_milestones_teammate_id", "teammate_milestones", ["teammate_id"])

    # ── Snapshots ────────────────────────────────────────────────────────
    if "maap_snapshots" not in existing_tables:
        op.create_table(
            "maap_snapshots",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("employee_id", sa.Integer(), nullable=True),
            sa.Column("created_by_id", sa.Integer(), nullable=True),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("change_type", sa.String(length=40), nullable=False),
            sa.Column("reason", sa.Text(), nullable=False),
            sa.Column("effective_date", sa.Date(), nullable=True),
            sa.Column("maap_data", sa.JSON(), nullable=False),
            sa.Column("form_params", sa.JSON(), nullable=False),
            sa.Column("request_info", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["employee_id"], ["people.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by_id"], ["people.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["company_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_maap_snapshots_employee_id", "maap_snapshots", ["employee_id"])
        op.create_index("ix_maap_snapshots_company_id", "maap_snapshots", ["company_id"])
        op.create_index(
            "ix_maap_snapshots_employee_company", "maap_snapshots", ["employee_id", "company_id"],
        )

    # ── Check-ins ────────────────────────────────────────────────────────
    if "assignment_check_ins" not in existing_tables:
        op.create_table(
            "assignment_check_ins",
            *_check_in_columns(),
            sa.Column("assignment_id", sa.Integer(), nullable=False),
            sa.Column("actual_energy_percentage", sa.Integer(), nullable=True),
            sa.Column("employee_personal_alignment", sa.String(length=30), nullable=True),
            sa.Column("employee_rating", sa.String(length=20), nullable=True),
            sa.Column("manager_rating", sa.String(length=20), nullable=True),
            sa.Column("official_rating", sa.String(length=20), nullable=True),
            sa.ForeignKeyConstraint(["assignment_id"], ["assignments.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_assignment_check_ins_teammate_id", "assignment_check_ins", ["teammate_id"])
        op.create_index(
            "ix_assignment_check_ins_teammate_assignment", "assignment_check_ins",
            ["teammate_id", "assignment_id"],
        )
        _partial_unique(
            "uq_assignment_check_ins_one_open", "assignment_check_ins",
            ["teammate_id", "assignment_id"], "official_check_in_completed_at IS NULL",
        )

    if "position_check_ins" not in existing_tables:
        op.create_table(
            "position_check_ins",
            *_check_in_columns(),
            sa.Column("employment_tenure_id", sa.Integer(), nullable=True),
            sa.Column("employee_rating", sa.Integer(), nullable=True),
            sa.Column("manager_rating", sa.Integer(), nullable=True),
            sa.Column("official_rating", sa.Integer(), nullable=True),
            sa.ForeignKeyConstraint(["employment_tenure_id"], ["employment_tenures.id"], ondelete="SET NULL"),
        )
        op.create_index("ix_position_check_ins_teammate_id", "position_check_ins", ["teammate_id"])
        _partial_unique(
            "uq_position_check_ins_one_open", "position_check_ins",
            ["teammate_id"], "official_check_in_completed_at IS NULL",
        )

    if "aspiration_check_ins" not in existing_tables:
        op.create_table(
            "aspiration_check_ins",
            *_check_in_columns(),
            sa.Column("aspiration_id", sa.Integer(), nullable=False),
            sa.Column("employee_rating", sa.String(length=20), nullable=True),
            sa.Column("manager_rating", sa.String(length=20), nullable=True),
            sa.Column("official_rating", sa.String(length=20), nullable=True),
            sa.ForeignKeyConstraint(["aspiration_id"], ["aspirations.id"], ondelete="CASCADE"),
        )
        op.create_index("ix_aspiration_check_ins_teammate_id", "aspiration_check_ins", ["teammate_id"])
        op.create_index(
            "ix_aspiration_check_ins_teammate_aspiration", "aspiration_check_ins",
            ["teammate_id", "aspiration_id"],
        )
        _partial_unique(
            "uq_aspiration_check_ins_one_open", "aspiration_check_ins",
            ["teammate_id", "aspiration_id"], "official_check_in_completed_at IS NULL",
        )

    # ── Moments & audit ──────────────────────────────────────────────────
    if "observable_moments" not in existing_tables:
        op.create_table(
            "observable_moments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("moment_type", sa.String(length=40), nullable=False),
            sa.Column("momentable_type", sa.String(length=50), nullable=False),
            sa.Column("momentable_id", sa.Integer(), nullable=False),
            sa.Column("primary_observer_id", sa.Integer(), nullable=True),
            sa.Column("created_by_id", sa.Integer(), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=False),
            sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["company_id"], ["organizations.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["primary_observer_id"], ["teammates.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["created_by_id"], ["people.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_observable_moments_company_id", "observable_moments", ["company_id"])
        op.create_index(
            "ix_observable_moments_momentable", "observable_moments",
            ["momentable_type", "momentable_id"],
        )

    if "audit_logs" not in existing_tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=True),
            sa.Column("entity_type", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("action", sa.String(length=60), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=True),
            sa.Column("diff_json", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["company_id"], ["organizations.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["actor_id"], ["people.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_company", "audit_logs", ["company_id"])
        op.create_index("idx_audit_action", "audit_logs", ["action"])
        op.create_index("idx_audit_ts", "audit_logs", ["timestamp"])
        op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])


def downgrade():
    for table in (
        "audit_logs",
        "observable_moments",
        "aspiration_check_ins",
        "position_check_ins",
        "assignment_check_ins",
        "maap_snapshots",
        "teammate_milestones",
        "employment_tenures",
        "assignment_tenures",
        "aspirations",
        "abilities",
        "assignments",
        "seats",
        "positions",
        "teammates",
        "people",
        "organizations",
    ):
        op.drop_table(table)
