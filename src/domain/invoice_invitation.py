"""Invoice Invitation Domain Entity"""

from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, String
from src.domain.base import BaseModel, IdType, generate_uuid


class InvoiceInvitation(BaseModel, table=True):
    """Link between a sent invoice and a client contact"""

    __tablename__ = "invoice_invitations"
    __table_args__ = (
        Index('ix_invoice_invitations_invoice_id', 'invoice_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
    )

    invoice_id: int = Field(
        sa_column=Column(IdType, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False),
    )

    client_contact_id: int = Field(
        sa_column=Column(IdType, ForeignKey("client_contacts.id", ondelete="CASCADE"), nullable=False),
    )

    key: str = Field(
        default_factory=generate_uuid,
        sa_column=Column(String(64), nullable=False),
    )
