import pytest
import pytest_asyncio
from decimal import Decimal
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401  registers every table on SQLModel.metadata
from src.adapter.repositories import (
    SqlAlchemyClientRepository,
    SqlAlchemyCompanyRepository,
    SqlAlchemyCreditRepository,
    SqlAlchemyInvoiceRepository,
    SqlAlchemyLedgerEntryRepository,
    SqlAlchemyPaymentRepository,
)
from src.adapter.services.notification_service import LoggingNotificationService
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.balance_ledger import BalanceLedger
from src.app.services.payment_gateway import GatewayRegistry
from src.app.use_cases.billing.create_invoice import CreateInvoice
from src.app.use_cases.billing.dtos import (
    CreateInvoiceCommandDTO,
    ReconcileCommandDTO,
    RecordPaymentCommandDTO,
    RefundPaymentCommandDTO,
)
from src.app.use_cases.billing.mark_invoice_sent import MarkInvoiceSent
from src.app.use_cases.billing.reconcile_ledger import ReconcileLedger
from src.app.use_cases.billing.record_payment import RecordPayment
from src.app.use_cases.billing.refund_payment import RefundPayment
from src.depends import get_gateway_registry, get_notification_service, get_session
from src.domain.client import Client
from src.domain.client_contact import ClientContact
from src.domain.company import Company
from src.domain.ledger_entry import LedgerStream
from src.domain.line_item import LineItem


@pytest_asyncio.fixture(scope="function")
async def engine():
    """In-memory SQLite database, one per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
async def company(db_session):
    company = Company(name="Acme GmbH", settings={}, tax_data={"seller_subregion": "DE"})
    db_session.add(company)
    await db_session.commit()
    await db_session.refresh(company)
    return company


@pytest_asyncio.fixture
async def billing_client(db_session, company):
    """Client with one primary contact and no open balance"""
    client = Client(company_id=company.id, name="Jane Doe", country_code="DE")
    db_session.add(client)
    await db_session.flush()
    db_session.add(
        ClientContact(client_id=client.id, company_id=company.id, email="jane@example.com", is_primary=True)
    )
    await db_session.commit()
    await db_session.refresh(client)
    return client


class Billing:
    """Use cases wired to one session"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.uow = SqlAlchemyUnitOfWork(session)
        self.clients = SqlAlchemyClientRepository(session)
        self.companies = SqlAlchemyCompanyRepository(session)
        self.invoices = SqlAlchemyInvoiceRepository(session)
        self.credits = SqlAlchemyCreditRepository(session)
        self.payments = SqlAlchemyPaymentRepository(session)
        self.entries = SqlAlchemyLedgerEntryRepository(session)
        self.ledger = BalanceLedger(self.entries, self.clients, self.invoices, self.credits)

    async def create_sent_invoice(self, client_id: int, cost: str = "100") -> int:
        created = await CreateInvoice(self.uow, self.clients, self.companies, self.invoices, self.ledger).execute(
            CreateInvoiceCommandDTO(
                client_id=client_id,
                line_items=[
                    LineItem(product_key="consulting", cost=Decimal(cost), tax_name1="MwSt.", tax_rate1=Decimal("19"))
                ],
            )
        )
        assert created.is_ok()
        invoice_id = created.value.invoice_id
        sent = await MarkInvoiceSent(self.uow, self.clients, self.invoices, self.ledger).execute(invoice_id)
        assert sent.is_ok()
        return invoice_id

    async def pay(self, invoice_id: int, amount: str):
        return await RecordPayment(
            self.uow, self.clients, self.invoices, self.payments, self.ledger
        ).execute(RecordPaymentCommandDTO(invoice_id=invoice_id, amount=Decimal(amount)))

    async def refund(self, payment_id: int, amount: str):
        return await RefundPayment(self.uow, self.clients, self.invoices, self.payments, self.ledger).execute(
            RefundPaymentCommandDTO(payment_id=payment_id, amount=Decimal(amount))
        )

    async def reconcile(self, fix: bool = False):
        result = await ReconcileLedger(
            self.uow,
            self.clients,
            self.invoices,
            self.payments,
            self.credits,
            self.entries,
            self.ledger,
        ).execute(ReconcileCommandDTO(fix=fix))
        assert result.is_ok()
        return result.value

    async def stream_total(self, client_id: int, stream: LedgerStream) -> Decimal:
        entries = await self.entries.list_by_client(client_id, stream=stream, limit=1000)
        return sum((entry.adjustment for entry in entries), Decimal("0"))


@pytest.fixture
def billing(db_session):
    return Billing(db_session)


@pytest.fixture
def gateway_registry():
    return GatewayRegistry()


@pytest_asyncio.fixture
async def client(db_session, gateway_registry):
    """Create test client with database session override"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    # Override the session dependency to use test session
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_gateway_registry] = lambda: gateway_registry
    app.dependency_overrides[get_notification_service] = lambda: LoggingNotificationService()

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
