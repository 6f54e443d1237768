"""Invoice records and the rendering collaborator.

The invoice row is written in its own commit after the financial write, as a
DRAFT. Rendering then fills in the document and verification links and marks
it SENT. A failed render leaves the DRAFT row in place; it can be retried
with `regenerate_invoice`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import models
from app.config import settings
from app.models.domain import DealStatus, InvoiceStatus
from app.services.amount_resolver import unit_price_for
from app.services.commission import load_commission_settings, money
from app.services.document_storage import write_document_bytes
from app.services.errors import InvalidState, NotFound
from app.services.invoice_pdf import build_invoice_pdf_bytes

logger = logging.getLogger("mediation.invoices")


@dataclass(frozen=True)
class RenderedInvoice:
    document_url: str
    verification_code_url: str | None = None


@dataclass(frozen=True)
class PlatformInfo:
    name: str
    currency: str


@dataclass(frozen=True)
class SnapshotItem:
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class DealSnapshot:
    deal_id: str
    deal_number: str
    trader_name: str
    client_name: str
    employee_name: str
    barcode: str | None
    items: list[SnapshotItem] = field(default_factory=list)


class InvoiceRenderer(Protocol):
    def render_invoice(
        self, invoice: models.Invoice, deal_snapshot: DealSnapshot, platform_info: PlatformInfo
    ) -> RenderedInvoice: ...

    def render_deal_code(self, deal: models.Deal) -> str: ...


class PdfInvoiceRenderer:
    """Writes invoices as PDFs under STORAGE_DIR/invoices."""

    def __init__(self, public_base_url: str | None = None):
        self.public_base_url = (public_base_url or settings.public_base_url).rstrip("/")

    def render_deal_code(self, deal: models.Deal) -> str:
        return f"{self.public_base_url}/verify/deals/{deal.deal_number}?code={deal.barcode or ''}"

    def render_invoice(
        self, invoice: models.Invoice, deal_snapshot: DealSnapshot, platform_info: PlatformInfo
    ) -> RenderedInvoice:
        cur = platform_info.currency
        item_rows = [
            (
                f"{item.description} x{item.quantity} @ {item.unit_price}",
                f"{item.line_total} {cur}",
            )
            for item in deal_snapshot.items
        ]
        total_rows = [
            ("Subtotal", f"{money(invoice.subtotal)} {cur}"),
            ("Platform commission", f"{money(invoice.platform_commission)} {cur}"),
            ("Shipping commission", f"{money(invoice.shipping_commission)} {cur}"),
            ("Employee commission", f"{money(invoice.employee_commission)} {cur}"),
            ("Total", f"{money(invoice.total_amount)} {cur}"),
        ]
        content = build_invoice_pdf_bytes(
            title=f"{platform_info.name} - Invoice {invoice.invoice_number}",
            header_lines=[
                f"Deal: {deal_snapshot.deal_number}",
                f"Trader: {deal_snapshot.trader_name}",
                f"Client: {deal_snapshot.client_name}",
                f"Guarantor: {deal_snapshot.employee_name}",
            ],
            item_rows=item_rows,
            total_rows=total_rows,
            footer_lines=[
                f"Barcode: {deal_snapshot.barcode or '-'}",
                f"Verify at {self.public_base_url}/verify/invoices/{invoice.invoice_number}",
            ],
        )
        stored = write_document_bytes(
            folder="invoices", filename=f"{invoice.invoice_number}.pdf", content=content
        )
        logger.info(
            "invoice_rendered",
            extra={
                "invoice_number": invoice.invoice_number,
                "size_bytes": stored.size_bytes,
                "checksum_sha256": stored.checksum_sha256,
            },
        )
        return RenderedInvoice(
            document_url=f"{self.public_base_url}/invoices/{invoice.invoice_number}.pdf",
            verification_code_url=(
                f"{self.public_base_url}/verify/invoices/{invoice.invoice_number}"
            ),
        )


_default_renderer: InvoiceRenderer | None = None


def get_invoice_renderer() -> InvoiceRenderer:
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = PdfInvoiceRenderer()
    return _default_renderer


def mint_invoice_number(deal: models.Deal, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"INV-{now.strftime('%Y')}-{str(deal.id).replace('-', '')[:8].upper()}"


def build_deal_snapshot(deal: models.Deal) -> DealSnapshot:
    items: list[SnapshotItem] = []
    for item in deal.items:
        unit = money(unit_price_for(item))
        offer_item = item.offer_item
        items.append(
            SnapshotItem(
                description=getattr(offer_item, "product_name", None) or "Item",
                quantity=int(item.quantity),
                unit_price=unit,
                line_total=money(unit * int(item.quantity)),
            )
        )
    return DealSnapshot(
        deal_id=deal.id,
        deal_number=deal.deal_number,
        trader_name=getattr(deal.trader, "company_name", None) or "",
        client_name=getattr(deal.client, "name", None) or "",
        employee_name=getattr(deal.employee, "name", None) or "",
        barcode=deal.barcode,
        items=items,
    )


def upsert_draft_invoice(
    db: Session, deal: models.Deal, transaction: models.FinancialTransaction, currency: str
) -> models.Invoice:
    """Create (or reset to DRAFT) the deal's invoice from a transaction. Commits."""

    invoice = db.query(models.Invoice).filter(models.Invoice.deal_id == deal.id).first()
    if invoice is None:
        invoice = models.Invoice(
            deal_id=deal.id,
            invoice_number=deal.invoice_number or mint_invoice_number(deal),
        )
        db.add(invoice)

    invoice.transaction_id = transaction.id
    invoice.subtotal = money(transaction.trader_amount)
    invoice.platform_commission = money(transaction.platform_commission)
    invoice.shipping_commission = money(transaction.shipping_commission)
    invoice.employee_commission = money(transaction.employee_commission)
    invoice.total_amount = money(transaction.amount)
    invoice.currency = currency
    invoice.status = InvoiceStatus.DRAFT
    db.commit()
    db.refresh(invoice)
    return invoice


def render_invoice_record(
    db: Session,
    invoice: models.Invoice,
    deal: models.Deal,
    renderer: InvoiceRenderer,
    platform_info: PlatformInfo,
) -> models.Invoice:
    """Render and mark SENT. Failures are logged and leave the DRAFT row."""

    try:
        rendered = renderer.render_invoice(invoice, build_deal_snapshot(deal), platform_info)
    except Exception:
        logger.exception(
            "side_effect_failed",
            extra={"kind": "invoice_render", "invoice_number": invoice.invoice_number},
        )
        return invoice

    invoice.invoice_url = rendered.document_url
    invoice.verification_url = rendered.verification_code_url
    invoice.status = InvoiceStatus.SENT
    invoice.rendered_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(invoice)
    return invoice


def generate_invoice(
    db: Session,
    *,
    deal_id: str,
    transaction_id: str,
    renderer: InvoiceRenderer | None = None,
) -> models.Invoice | None:
    """Post-commit invoice emission for a verified payment. Never raises."""

    renderer = renderer or get_invoice_renderer()
    try:
        deal = db.get(models.Deal, deal_id)
        transaction = db.get(models.FinancialTransaction, transaction_id)
        if deal is None or transaction is None:
            logger.warning(
                "invoice_generation_skipped",
                extra={"deal_id": deal_id, "transaction_id": transaction_id},
            )
            return None
        commission_settings = load_commission_settings(db)
        invoice = upsert_draft_invoice(db, deal, transaction, commission_settings.currency)
        return render_invoice_record(
            db,
            invoice,
            deal,
            renderer,
            PlatformInfo(
                name=commission_settings.platform_name, currency=commission_settings.currency
            ),
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "side_effect_failed",
            extra={"kind": "invoice_generation", "deal_id": deal_id},
        )
        return None


def regenerate_invoice(
    db: Session, deal: models.Deal, renderer: InvoiceRenderer | None = None
) -> models.Invoice:
    if deal.status not in (DealStatus.PAID, DealStatus.SETTLED):
        raise InvalidState("Invoices can only be generated for paid or settled deals")

    transaction = (
        db.query(models.FinancialTransaction)
        .filter(models.FinancialTransaction.deal_id == deal.id)
        .order_by(models.FinancialTransaction.created_at.desc())
        .first()
    )
    if transaction is None:
        raise NotFound("No financial transaction found for this deal")

    renderer = renderer or get_invoice_renderer()
    commission_settings = load_commission_settings(db)
    invoice = upsert_draft_invoice(db, deal, transaction, commission_settings.currency)
    return render_invoice_record(
        db,
        invoice,
        deal,
        renderer,
        PlatformInfo(name=commission_settings.platform_name, currency=commission_settings.currency),
    )


def list_invoices(db: Session, deal_id: str) -> list[models.Invoice]:
    return (
        db.query(models.Invoice)
        .filter(models.Invoice.deal_id == deal_id)
        .order_by(models.Invoice.created_at.desc())
        .all()
    )
