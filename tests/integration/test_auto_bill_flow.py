"""Integration tests for AutoBillInvoice against a real database"""

import pytest
import pytest_asyncio
from decimal import Decimal

from src.app.services.payment_gateway import GatewayRegistry, GatewayResponse, PaymentGateway
from src.app.use_cases.billing.auto_bill_invoice import AutoBillInvoice
from src.app.use_cases.billing.create_credit import CreateCredit
from src.app.use_cases.billing.dtos import AutoBillCommandDTO, AutoBillOutcome, CreateCreditCommandDTO
from src.adapter.repositories import SqlAlchemyGatewayTokenRepository
from src.domain.client import Client
from src.domain.client_gateway_token import ClientGatewayToken
from src.domain.company_gateway import CompanyGateway
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.ledger_entry import LedgerActivity
from src.domain.line_item import LineItemType


class FakeGateway(PaymentGateway):
    def __init__(self, success: bool = True):
        self.success = success
        self.charges = []

    async def charge(self, token, amount, currency, reference):
        self.charges.append((token, amount, currency, reference))
        if self.success:
            return GatewayResponse(success=True, transaction_ref=f"ch_{len(self.charges)}")
        return GatewayResponse(success=False, raw_response={"error": "card_declined"})


class FailingGateway(PaymentGateway):
    async def charge(self, token, amount, currency, reference):
        raise RuntimeError("sdk exploded")


@pytest_asyncio.fixture
async def stored_card(db_session, company, billing_client):
    gateway = CompanyGateway(company_id=company.id, gateway_key="checkout", fees_and_limits={"fee_amount": "2"})
    db_session.add(gateway)
    await db_session.flush()
    db_session.add(
        ClientGatewayToken(client_id=billing_client.id, company_gateway_id=gateway.id, token="tok_1", is_default=True)
    )
    await db_session.commit()
    return gateway


def _auto_bill(billing, gateway: PaymentGateway) -> AutoBillInvoice:
    return AutoBillInvoice(
        billing.uow,
        billing.clients,
        billing.companies,
        billing.invoices,
        billing.credits,
        billing.payments,
        SqlAlchemyGatewayTokenRepository(billing.session),
        billing.ledger,
        GatewayRegistry({"checkout": gateway}),
        max_tries=3,
    )


@pytest.mark.asyncio
class TestAutoBillFlow:
    async def test_credits_then_card_settle_invoice(self, billing, billing_client, stored_card, db_session):
        """
        Given: A sent invoice of 119, a credit of 19 and a card with a fee of 2
        When: The invoice is auto billed
        Then: Credits cover 19, the card is charged 102 and all figures reconcile
        """
        # Arrange
        invoice_id = await billing.create_sent_invoice(billing_client.id)
        credit = await CreateCredit(billing.uow, billing.clients, billing.invoices, billing.credits, billing.ledger).execute(
            CreateCreditCommandDTO(client_id=billing_client.id, amount=Decimal("19"))
        )
        assert credit.is_ok()
        gateway = FakeGateway()

        # Act
        result = await _auto_bill(billing, gateway).execute(AutoBillCommandDTO(invoice_id=invoice_id))

        # Assert
        assert result.is_ok()
        assert result.value.outcome == AutoBillOutcome.CHARGED
        assert result.value.credits_applied == Decimal("19")
        assert result.value.gateway_fee == Decimal("2")
        assert result.value.charged_amount == Decimal("102")
        assert gateway.charges == [("tok_1", Decimal("102"), "EUR", result.value.invoice.number)]

        invoice = await db_session.get(Invoice, invoice_id)
        client = await db_session.get(Client, billing_client.id)
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.amount == Decimal("121")
        assert client.balance == Decimal("0")
        assert client.paid_to_date == Decimal("121")
        assert client.credit_balance == Decimal("0")
        assert (await billing.reconcile()).discrepancies_found == 0

    async def test_decline_unwinds_fee(self, billing, billing_client, stored_card, db_session):
        # Arrange
        invoice_id = await billing.create_sent_invoice(billing_client.id)

        # Act
        result = await _auto_bill(billing, FakeGateway(success=False)).execute(
            AutoBillCommandDTO(invoice_id=invoice_id)
        )

        # Assert
        assert result.is_err()
        assert result.error.code == "GATEWAY_DECLINED"

        invoice = await db_session.get(Invoice, invoice_id)
        client = await db_session.get(Client, billing_client.id)
        assert invoice.amount == Decimal("119")
        assert invoice.balance == Decimal("119")
        assert invoice.auto_bill_tries == 1
        assert all(item.type_id != LineItemType.GATEWAY_FEE for item in invoice.get_line_items())
        assert client.balance == Decimal("119")

        fee_entries = [
            entry.adjustment
            for entry in await billing.entries.list_by_client(client.id)
            if entry.activity == LedgerActivity.GATEWAY_FEE
        ]
        assert sorted(fee_entries) == [Decimal("-2"), Decimal("2")]
        assert (await billing.reconcile()).discrepancies_found == 0

    async def test_unexpected_gateway_error_counts_as_failed_try(self, billing, billing_client, stored_card, db_session):
        """
        Given: A sent invoice of 119 and a card with a fee of 2
        When: The gateway raises an error that is not a gateway error
        Then: The fee is unwound, the try is counted and the figures reconcile
        """
        # Arrange
        invoice_id = await billing.create_sent_invoice(billing_client.id)

        # Act
        result = await _auto_bill(billing, FailingGateway()).execute(AutoBillCommandDTO(invoice_id=invoice_id))

        # Assert
        assert result.is_err()
        assert result.error.code == "GATEWAY_TRANSPORT_ERROR"
        assert "sdk exploded" in result.error.reason

        invoice = await db_session.get(Invoice, invoice_id)
        client = await db_session.get(Client, billing_client.id)
        assert invoice.amount == Decimal("119")
        assert invoice.balance == Decimal("119")
        assert invoice.auto_bill_tries == 1
        assert client.balance == Decimal("119")
        assert (await billing.reconcile()).discrepancies_found == 0

    async def test_no_stored_method(self, billing, billing_client):
        invoice_id = await billing.create_sent_invoice(billing_client.id)

        result = await _auto_bill(billing, FakeGateway()).execute(AutoBillCommandDTO(invoice_id=invoice_id))

        assert result.error.code == "no_payment_method_specified"
