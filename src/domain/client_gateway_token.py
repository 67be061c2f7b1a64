"""Client Gateway Token Domain Entity"""

from sqlmodel import Field, Column, Index
from sqlalchemy import ForeignKey, String
from src.domain.base import BaseModel, IdType


class ClientGatewayToken(BaseModel, table=True):
    """Stored, reusable payment method of a client at one gateway"""

    __tablename__ = "client_gateway_tokens"
    __table_args__ = (
        Index('ix_client_gateway_tokens_client_id', 'client_id'),
    )

    id: int = Field(
        sa_column=Column(IdType, primary_key=True, autoincrement=True),
    )

    client_id: int = Field(
        sa_column=Column(IdType, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
    )

    company_gateway_id: int = Field(
        sa_column=Column(IdType, ForeignKey("company_gateways.id", ondelete="CASCADE"), nullable=False),
    )

    token: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Gateway side payment method reference"
    )

    is_default: bool = Field(default=False)

    is_deleted: bool = Field(default=False)
