"""Invoice repository - Database operations for invoices and payments"""

from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models_invoice import Invoice, InvoicePayment


class InvoiceRepository:
    @staticmethod
    def build_query(
        db: Session,
        account_id: int,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        sort_order: str = "desc",
    ) -> Query:
        query = db.query(Invoice).filter(Invoice.account_id == account_id)
        if status:
            query = query.filter(Invoice.status == status)
        if client_id:
            query = query.filter(Invoice.client_id == client_id)
        order = Invoice.created_at.asc() if sort_order == "asc" else Invoice.created_at.desc()
        return query.order_by(order, Invoice.id.desc())

    @staticmethod
    def get_invoice(db: Session, invoice_id: int, account_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.id == invoice_id, Invoice.account_id == account_id)
            .first()
        )

    @staticmethod
    def get_open_invoice_for_job(db: Session, job_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.job_id == job_id, Invoice.status != "cancelled")
            .first()
        )

    @staticmethod
    def get_payment(db: Session, payment_id: int, invoice_id: int) -> Optional[InvoicePayment]:
        return (
            db.query(InvoicePayment)
            .filter(InvoicePayment.id == payment_id, InvoicePayment.invoice_id == invoice_id)
            .first()
        )

    @staticmethod
    def get_payment_by_reference(
        db: Session, account_id: int, method: str, reference: str
    ) -> Optional[InvoicePayment]:
        return (
            db.query(InvoicePayment)
            .filter(
                InvoicePayment.account_id == account_id,
                InvoicePayment.method == method,
                InvoicePayment.reference == reference,
            )
            .first()
        )

    @staticmethod
    def update_invoice(db: Session, invoice: Invoice, **updates) -> Invoice:
        for key, value in updates.items():
            setattr(invoice, key, value)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def delete_invoice(db: Session, invoice: Invoice) -> None:
        db.delete(invoice)
        db.commit()
