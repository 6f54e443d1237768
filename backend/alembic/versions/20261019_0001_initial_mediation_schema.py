"""initial mediation schema

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001_initial_mediation_schema"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> sa.Enum:
    # Stored as VARCHAR on every dialect so new states never need ALTER TYPE.
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=False)


def _money() -> sa.Numeric:
    return sa.Numeric(14, 2)


def _ts(**kw) -> sa.Column:
    name = kw.pop("name", "created_at")
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), **kw)


def upgrade() -> None:
    actor_type = _enum("CLIENT", "TRADER", "EMPLOYEE", "ADMIN", "SYSTEM", name="actortype")
    deal_status = _enum("NEGOTIATION", "APPROVED", "PAID", "SETTLED", "CANCELLED", name="dealstatus")

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255)),
        sa.Column("employee_code", sa.String(length=32)),
        sa.Column("commission_rate", sa.Numeric(5, 2), nullable=False, server_default="1.00"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts(),
    )
    op.create_index("ix_employees_email", "employees", ["email"], unique=True)
    op.create_index("ix_employees_employee_code", "employees", ["employee_code"], unique=True)

    op.create_table(
        "traders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255)),
        sa.Column("email", sa.String(length=255)),
        sa.Column("trader_code", sa.String(length=32)),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts(),
    )
    op.create_index("ix_traders_email", "traders", ["email"], unique=True)
    op.create_index("ix_traders_trader_code", "traders", ["trader_code"], unique=True)
    op.create_index("ix_traders_employee_id", "traders", ["employee_id"])

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255)),
        sa.Column("country", sa.String(length=64)),
        sa.Column("city", sa.String(length=64)),
        _ts(),
    )
    op.create_index("ix_clients_email", "clients", ["email"], unique=True)

    op.create_table(
        "shipping_companies",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact_phone", sa.String(length=64)),
        sa.Column(
            "status", _enum("ACTIVE", "INACTIVE", name="shippingcompanystatus"), nullable=False
        ),
        _ts(),
    )

    op.create_table(
        "offers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("trader_id", sa.Integer(), sa.ForeignKey("traders.id"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("status", _enum("ACTIVE", "INACTIVE", name="offerstatus"), nullable=False),
        _ts(),
    )
    op.create_index("ix_offers_trader_id", "offers", ["trader_id"])
    op.create_index("ix_offers_status", "offers", ["status"])

    op.create_table(
        "offer_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("offer_id", sa.String(length=36), sa.ForeignKey("offers.id"), nullable=False),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("unit_price", _money(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("cartons", sa.Integer(), nullable=False),
        sa.Column("cbm", sa.Numeric(12, 4), nullable=False),
        _ts(),
    )
    op.create_index("ix_offer_items_offer_id", "offer_items", ["offer_id"])

    op.create_table(
        "deals",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("deal_number", sa.String(length=32), nullable=False),
        sa.Column("offer_id", sa.String(length=36), sa.ForeignKey("offers.id"), nullable=False),
        sa.Column("trader_id", sa.Integer(), sa.ForeignKey("traders.id"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column(
            "shipping_company_id",
            sa.Integer(),
            sa.ForeignKey("shipping_companies.id"),
            nullable=True,
        ),
        sa.Column("status", deal_status, nullable=False),
        sa.Column("negotiated_amount", _money(), nullable=True),
        sa.Column("total_cartons", sa.Integer(), nullable=False),
        sa.Column("total_cbm", sa.Numeric(12, 4), nullable=False),
        sa.Column("shipping_type", _enum("LAND", "SEA", name="shippingtype"), nullable=True),
        sa.Column("notes", sa.Text()),
        sa.Column("invoice_number", sa.String(length=64), unique=True),
        sa.Column("barcode", sa.String(length=64)),
        sa.Column("qr_code_url", sa.String(length=512)),
        sa.Column("quote_sent_at", sa.DateTime(timezone=True)),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("settled_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancellation_reason", sa.Text()),
        _ts(),
        _ts(name="updated_at"),
    )
    op.create_index("ix_deals_deal_number", "deals", ["deal_number"], unique=True)
    op.create_index("ix_deals_offer_id", "deals", ["offer_id"])
    op.create_index("ix_deals_trader_id", "deals", ["trader_id"])
    op.create_index("ix_deals_client_id", "deals", ["client_id"])
    op.create_index("ix_deals_employee_id", "deals", ["employee_id"])
    op.create_index("ix_deals_status", "deals", ["status"])

    op.create_table(
        "deal_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("deal_id", sa.String(length=36), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column(
            "offer_item_id", sa.String(length=36), sa.ForeignKey("offer_items.id"), nullable=False
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("cartons", sa.Integer(), nullable=False),
        sa.Column("cbm", sa.Numeric(12, 4), nullable=False),
        sa.Column("negotiated_price", _money(), nullable=True),
        sa.Column("notes", sa.Text()),
        _ts(),
    )
    op.create_index("ix_deal_items_deal_id", "deal_items", ["deal_id"])

    op.create_table(
        "deal_negotiation_messages",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("deal_id", sa.String(length=36), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column(
            "sender_type", _enum("CLIENT", "TRADER", "EMPLOYEE", name="sendertype"), nullable=False
        ),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text()),
        sa.Column("proposed_price", _money(), nullable=True),
        sa.Column("proposed_quantity", sa.Integer()),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        _ts(),
    )
    op.create_index(
        "ix_deal_negotiation_messages_deal_id", "deal_negotiation_messages", ["deal_id"]
    )
    op.create_index(
        "ix_deal_negotiation_messages_created_at", "deal_negotiation_messages", ["created_at"]
    )

    op.create_table(
        "deal_status_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("deal_id", sa.String(length=36), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column("status", deal_status, nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("changed_by", sa.Integer(), nullable=True),
        sa.Column("changed_by_type", actor_type, nullable=False),
        _ts(),
    )
    op.create_index("ix_deal_status_history_deal_id", "deal_status_history", ["deal_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("deal_id", sa.String(length=36), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column(
            "method",
            _enum("BANK_TRANSFER", "CARD", "CASH", "OTHER", name="paymentmethod"),
            nullable=False,
        ),
        sa.Column(
            "status", _enum("PENDING", "COMPLETED", "FAILED", name="paymentstatus"), nullable=False
        ),
        sa.Column("transaction_ref", sa.String(length=128)),
        sa.Column("receipt_url", sa.String(length=512)),
        sa.Column("notes", sa.Text()),
        sa.Column("verified_at", sa.DateTime(timezone=True)),
        sa.Column("verified_by", sa.Integer()),
        _ts(),
    )
    op.create_index("ix_payments_deal_id", "payments", ["deal_id"])
    op.create_index("ix_payments_status", "payments", ["status"])

    op.create_table(
        "financial_transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "transaction_type", _enum("DEPOSIT", "WITHDRAWAL", name="transactiontype"), nullable=False
        ),
        sa.Column(
            "status",
            _enum("PENDING", "COMPLETED", "FAILED", name="transactionstatus"),
            nullable=False,
        ),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("platform_commission", _money(), nullable=False),
        sa.Column("shipping_commission", _money(), nullable=False),
        sa.Column("employee_commission", _money(), nullable=False),
        sa.Column("trader_amount", _money(), nullable=False),
        sa.Column("deal_id", sa.String(length=36), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column(
            "payment_id", sa.String(length=36), sa.ForeignKey("payments.id"), nullable=False
        ),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("trader_id", sa.Integer(), sa.ForeignKey("traders.id"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("description", sa.Text()),
        _ts(),
    )
    op.create_index("ix_financial_transactions_deal_id", "financial_transactions", ["deal_id"])
    op.create_index(
        "ix_financial_transactions_payment_id",
        "financial_transactions",
        ["payment_id"],
        unique=True,
    )

    op.create_table(
        "financial_ledger_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.String(length=36),
            sa.ForeignKey("financial_transactions.id"),
            nullable=False,
        ),
        sa.Column("entry_type", _enum("DEBIT", "CREDIT", name="ledgerentrytype"), nullable=False),
        sa.Column(
            "account_type",
            _enum("CLIENT", "PLATFORM", "EMPLOYEE", "TRADER", name="ledgeraccounttype"),
            nullable=False,
        ),
        sa.Column("account_id", sa.Integer(), nullable=True),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("balance_before", _money(), nullable=False, server_default="0"),
        sa.Column("balance_after", _money(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text()),
        sa.Column("reference", sa.String(length=64)),
        _ts(),
    )
    op.create_index(
        "ix_financial_ledger_entries_transaction_id", "financial_ledger_entries", ["transaction_id"]
    )
    op.create_index(
        "ix_financial_ledger_entries_account_type", "financial_ledger_entries", ["account_type"]
    )
    op.create_index(
        "ix_financial_ledger_entries_account_id", "financial_ledger_entries", ["account_id"]
    )
    op.create_index(
        "ix_financial_ledger_entries_reference", "financial_ledger_entries", ["reference"]
    )
    op.create_index(
        "ix_financial_ledger_entries_created_at", "financial_ledger_entries", ["created_at"]
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("deal_id", sa.String(length=36), sa.ForeignKey("deals.id"), nullable=False),
        sa.Column(
            "transaction_id",
            sa.String(length=36),
            sa.ForeignKey("financial_transactions.id"),
            nullable=False,
        ),
        sa.Column("invoice_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("subtotal", _money(), nullable=False),
        sa.Column("platform_commission", _money(), nullable=False),
        sa.Column("shipping_commission", _money(), nullable=False),
        sa.Column("employee_commission", _money(), nullable=False),
        sa.Column("total_amount", _money(), nullable=False),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("status", _enum("DRAFT", "SENT", name="invoicestatus"), nullable=False),
        sa.Column("invoice_url", sa.String(length=512)),
        sa.Column("verification_url", sa.String(length=512)),
        sa.Column("rendered_at", sa.DateTime(timezone=True)),
        _ts(),
        _ts(name="updated_at"),
    )
    op.create_index("ix_invoices_deal_id", "invoices", ["deal_id"], unique=True)

    op.create_table(
        "platform_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("platform_commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("shipping_commission_rate", sa.Numeric(5, 2), nullable=False),
        sa.Column("cbm_rate", _money(), nullable=True),
        sa.Column(
            "commission_method",
            _enum("PERCENTAGE", "CBM", "BOTH", name="commissionmethod"),
            nullable=False,
        ),
        sa.Column("currency", sa.String(length=8), nullable=False),
        sa.Column("platform_name", sa.String(length=128), nullable=False),
        sa.Column("updated_by", sa.Integer()),
        _ts(),
        _ts(name="updated_at"),
    )
    op.create_index("ix_platform_settings_updated_at", "platform_settings", ["updated_at"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("user_type", actor_type, nullable=False),
        sa.Column("kind", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("related_entity_type", sa.String(length=32)),
        sa.Column("related_entity_id", sa.String(length=64)),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index(
        "ix_notifications_related_entity_id", "notifications", ["related_entity_id"]
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_type", actor_type, nullable=False),
        sa.Column("actor_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("metadata_json", sa.Text()),
        sa.Column("request_id", sa.String(length=64)),
        sa.Column("ip", sa.String(length=64)),
        sa.Column("user_agent", sa.String(length=256)),
        _ts(),
    )
    op.create_index("ix_activity_logs_actor_id", "activity_logs", ["actor_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"])
    op.create_index("ix_activity_logs_request_id", "activity_logs", ["request_id"])

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("doc_type", sa.String(length=16), nullable=False),
        sa.Column("year", sa.String(length=4), nullable=False),
        sa.Column("last_seq", sa.Integer(), nullable=False, server_default="0"),
        _ts(name="updated_at", nullable=False),
        sa.UniqueConstraint("doc_type", "year", name="uq_doc_seq_doc_type_year"),
    )


def downgrade() -> None:
    for table in (
        "document_sequences",
        "activity_logs",
        "notifications",
        "platform_settings",
        "invoices",
        "financial_ledger_entries",
        "financial_transactions",
        "payments",
        "deal_status_history",
        "deal_negotiation_messages",
        "deal_items",
        "deals",
        "offer_items",
        "offers",
        "shipping_companies",
        "clients",
        "traders",
        "employees",
    ):
        op.drop_table(table)
