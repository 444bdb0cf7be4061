"""baseline deal store schema

Revision ID: 20261001_0001
Revises:
Create Date: 2026-10-01 00:00:01
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261001_0001"
down_revision = None
branch_labels = None
depends_on = None


def _optional(*names: str, type_: sa.types.TypeEngine) -> list[sa.Column]:
    return [sa.Column(name, type_, nullable=True) for name in names]


def upgrade() -> None:
    op.create_table(
        "reps",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("commission_level", sa.String(), nullable=True),
        sa.Column("default_commission_percent", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "deals",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("rep_id", sa.String(), nullable=True),
        *_optional(
            "rep_name",
            "homeowner_name",
            "homeowner_phone",
            "homeowner_email",
            "address",
            "city",
            "state",
            "zip_code",
            "roof_type",
            "insurance_company",
            "policy_number",
            "claim_number",
            "adjuster_name",
            "adjuster_phone",
            "adjuster_email",
            "approval_type",
            "material_category",
            "material_type",
            "material_color",
            "drip_edge",
            "vent_color",
            "lost_statement_url",
            "insurance_agreement_url",
            "agreement_document_url",
            "signature_url",
            "acv_receipt_url",
            "deductible_receipt_url",
            "depreciation_receipt_url",
            "permit_file_url",
            "invoice_url",
            "completion_form_url",
            "completion_form_signature_url",
            "homeowner_completion_signature_url",
            type_=sa.String(),
        ),
        *_optional("notes", "adjuster_notes", "commission_override_reason", type_=sa.Text()),
        *_optional(
            "roof_squares",
            "rcv",
            "acv",
            "deductible",
            "depreciation",
            "invoice_amount",
            "commission_override_amount",
            type_=sa.Float(),
        ),
        *_optional(
            "date_of_loss",
            "inspection_date",
            "signed_date",
            "install_date",
            "invoice_sent_date",
            "commission_paid_date",
            type_=sa.Date(),
        ),
        *_optional(
            "adjuster_meeting_date",
            "approved_date",
            "completion_signed_date",
            "claim_filed_date",
            "awaiting_approval_date",
            "acv_collected_date",
            "deductible_collected_date",
            "materials_selected_date",
            "installed_date",
            "depreciation_collected_date",
            "complete_date",
            "commission_override_date",
            type_=sa.DateTime(),
        ),
        *_optional("inspection_images", "install_images", "completion_images", type_=sa.JSON()),
        sa.Column("contract_signed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("commission_paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("payment_requested", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["rep_id"], ["reps.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_deals_status", "deals", ["status"])
    op.create_index("idx_deals_rep_id", "deals", ["rep_id"])

    op.create_table(
        "pins",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("rep_id", sa.String(), nullable=True),
        sa.Column("homeowner_name", sa.String(), nullable=True),
        sa.Column("homeowner_phone", sa.String(), nullable=True),
        sa.Column("homeowner_email", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("zip_code", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("deal_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["rep_id"], ["reps.id"]),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "deal_commissions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("deal_id", sa.String(), nullable=False),
        sa.Column("rep_id", sa.String(), nullable=True),
        sa.Column("commission_type", sa.String(), nullable=True),
        sa.Column("commission_percent", sa.Float(), nullable=True),
        sa.Column("commission_amount", sa.Float(), nullable=True),
        sa.Column("paid", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"]),
        sa.ForeignKeyConstraint(["rep_id"], ["reps.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_deal_commissions_deal_id", "deal_commissions", ["deal_id"])


def downgrade() -> None:
    op.drop_index("idx_deal_commissions_deal_id", table_name="deal_commissions")
    op.drop_table("deal_commissions")
    op.drop_table("pins")
    op.drop_index("idx_deals_rep_id", table_name="deals")
    op.drop_index("idx_deals_status", table_name="deals")
    op.drop_table("deals")
    op.drop_table("reps")
