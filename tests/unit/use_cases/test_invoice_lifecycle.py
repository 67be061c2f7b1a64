"""Unit tests for invoice lifecycle use cases

Tests cover:
- MarkInvoiceSent: balance joins the client, invitations per contact
- UpdateInvoice: balance follows the total, paid amount floor
- CancelInvoice
- ApplyLateFee: explicit and settings driven fees
- CreateCredit
- GetClientBalance and ListLedgerEntries queries
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.services.balance_ledger import BalanceLedger
from src.app.use_cases.billing.apply_late_fee import ApplyLateFee
from src.app.use_cases.billing.cancel_invoice import CancelInvoice
from src.app.use_cases.billing.create_credit import CreateCredit
from src.app.use_cases.billing.dtos import (
    ApplyLateFeeCommandDTO,
    CreateCreditCommandDTO,
    UpdateInvoiceCommandDTO,
)
from src.app.use_cases.billing.get_client_balance import GetClientBalance
from src.app.use_cases.billing.list_ledger_entries import ListLedgerEntries
from src.app.use_cases.billing.mark_invoice_sent import MarkInvoiceSent
from src.app.use_cases.billing.update_invoice import UpdateInvoice
from src.domain.client import Client
from src.domain.client_contact import ClientContact
from src.domain.company import Company
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_invitation import InvoiceInvitation
from src.domain.ledger_entry import LedgerActivity, LedgerEntry, LedgerStream
from src.domain.line_item import LineItem, LineItemType


@pytest.fixture
def client():
    return Client(id=7, company_id=1, name="Jane", balance=Decimal("100"))


@pytest.fixture
def invoice():
    invoice = Invoice(
        id=12, company_id=1, client_id=7, number="INV-000012",
        status=InvoiceStatus.SENT, amount=Decimal("100"), balance=Decimal("100"),
    )
    invoice.set_line_items([LineItem(product_key="consulting", cost=Decimal("100"))])
    return invoice


@pytest.fixture
def company():
    return Company(id=1, name="Acme", settings={})


@pytest.fixture
def client_repo(client):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=client)
    repo.update = AsyncMock(side_effect=lambda c: c)
    repo.list_contacts = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def company_repo(company):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=company)
    repo.get_group_setting = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def invoice_repo(invoice):
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=invoice)
    repo.update = AsyncMock(side_effect=lambda i: i)
    repo.list_invitations = AsyncMock(return_value=[])
    repo.create_invitation = AsyncMock(side_effect=lambda i: i)
    return repo


@pytest.fixture
def ledger(mock_ledger_repo, client_repo, invoice_repo):
    return BalanceLedger(mock_ledger_repo, client_repo, invoice_repo)


@pytest.mark.asyncio
class TestMarkInvoiceSent:
    async def test_draft_joins_client_balance_and_invites_contacts(
        self, mock_uow, client_repo, invoice_repo, ledger, invoice, client
    ):
        """
        Given: A draft of 100, a client with two contacts, one already invited
        When: The invoice is sent
        Then: Client balance grows by 100 and only the second contact is invited
        """
        # Arrange
        invoice.status = InvoiceStatus.DRAFT
        client.balance = Decimal("0")
        client_repo.list_contacts = AsyncMock(
            return_value=[
                ClientContact(id=1, client_id=7, company_id=1, is_primary=True),
                ClientContact(id=2, client_id=7, company_id=1),
            ]
        )
        invoice_repo.list_invitations = AsyncMock(
            return_value=[InvoiceInvitation(id=5, invoice_id=12, client_contact_id=1, key="k1")]
        )
        use_case = MarkInvoiceSent(mock_uow, client_repo, invoice_repo, ledger)

        # Act
        result = await use_case.execute(12)

        # Assert
        assert result.is_ok()
        assert result.value.invoice.status == InvoiceStatus.SENT.value
        assert result.value.ledger_entries[0].adjustment == Decimal("100")
        assert client.balance == Decimal("100")
        invoice_repo.create_invitation.assert_called_once()
        assert invoice_repo.create_invitation.call_args.args[0].client_contact_id == 2
        mock_uow.commit.assert_called_once()

    async def test_already_sent_rejected(self, mock_uow, client_repo, invoice_repo, ledger):
        use_case = MarkInvoiceSent(mock_uow, client_repo, invoice_repo, ledger)

        result = await use_case.execute(12)

        assert result.error.code == "VALIDATION_ERROR"
        mock_uow.rollback.assert_called_once()


@pytest.mark.asyncio
class TestUpdateInvoice:
    @pytest.fixture
    def use_case(self, mock_uow, client_repo, company_repo, invoice_repo, ledger):
        return UpdateInvoice(mock_uow, client_repo, company_repo, invoice_repo, ledger)

    async def test_balance_follows_total(self, use_case, invoice, client, mock_ledger_repo):
        # Arrange
        command = UpdateInvoiceCommandDTO(
            invoice_id=12,
            line_items=[LineItem(product_key="consulting", cost=Decimal("150"))],
        )

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.is_ok()
        assert invoice.amount == Decimal("150.00")
        assert invoice.balance == Decimal("150.00")
        assert client.balance == Decimal("150.00")
        [entry] = mock_ledger_repo.appended
        assert entry.adjustment == Decimal("50.00")

    async def test_header_fields_change(self, use_case, invoice):
        command = UpdateInvoiceCommandDTO(invoice_id=12, discount=Decimal("10"), is_amount_discount=True)

        await use_case.execute(command)

        assert invoice.amount == Decimal("90.00")
        assert invoice.balance == Decimal("90.00")

    async def test_draft_update_leaves_client_alone(self, use_case, invoice, client, mock_ledger_repo):
        # Arrange
        invoice.status = InvoiceStatus.DRAFT
        command = UpdateInvoiceCommandDTO(
            invoice_id=12, line_items=[LineItem(cost=Decimal("40"))]
        )

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.value.ledger_entries == []
        assert invoice.balance == Decimal("40.00")
        assert client.balance == Decimal("100")
        assert mock_ledger_repo.appended == []

    async def test_total_below_paid_rejected(self, use_case, invoice, mock_uow):
        # Arrange
        invoice.status = InvoiceStatus.PARTIAL
        invoice.balance = Decimal("20")
        invoice.paid_to_date = Decimal("80")
        command = UpdateInvoiceCommandDTO(invoice_id=12, line_items=[LineItem(cost=Decimal("50"))])

        # Act
        result = await use_case.execute(command)

        # Assert
        assert result.error.code == "INVOICE_AMOUNT_BELOW_PAID"
        mock_uow.rollback.assert_called_once()
        mock_uow.commit.assert_not_called()

    async def test_cancelled_not_editable(self, use_case, invoice):
        invoice.status = InvoiceStatus.CANCELLED

        result = await use_case.execute(UpdateInvoiceCommandDTO(invoice_id=12, discount=Decimal("1")))

        assert result.error.code == "INVOICE_NOT_EDITABLE"


@pytest.mark.asyncio
class TestCancelInvoice:
    async def test_cancel_removes_balance(self, mock_uow, client_repo, invoice_repo, ledger, invoice, client):
        use_case = CancelInvoice(mock_uow, client_repo, invoice_repo, ledger)

        result = await use_case.execute(12)

        assert result.value.invoice.status == InvoiceStatus.CANCELLED.value
        assert invoice.balance == Decimal("0")
        assert client.balance == Decimal("0")

    async def test_cancel_draft_rejected(self, mock_uow, client_repo, invoice_repo, ledger, invoice):
        invoice.status = InvoiceStatus.DRAFT
        use_case = CancelInvoice(mock_uow, client_repo, invoice_repo, ledger)

        result = await use_case.execute(12)

        assert result.error.code == "VALIDATION_ERROR"


@pytest.mark.asyncio
class TestApplyLateFee:
    @pytest.fixture
    def use_case(self, mock_uow, client_repo, company_repo, invoice_repo, ledger):
        return ApplyLateFee(mock_uow, client_repo, company_repo, invoice_repo, ledger)

    async def test_percent_of_balance(self, use_case, invoice, client):
        # Act
        result = await use_case.execute(ApplyLateFeeCommandDTO(invoice_id=12, percent=Decimal("10")))

        # Assert
        assert result.is_ok()
        assert invoice.amount == Decimal("110.00")
        assert invoice.balance == Decimal("110.00")
        assert client.balance == Decimal("110.00")
        assert invoice.get_line_items()[-1].type_id == LineItemType.LATE_FEE
        assert result.value.ledger_entries[0].activity == LedgerActivity.LATE_FEE

    async def test_fee_from_settings(self, use_case, company, invoice):
        company.settings = {"late_fee_amount1": "5"}

        await use_case.execute(ApplyLateFeeCommandDTO(invoice_id=12))

        assert invoice.balance == Decimal("105.00")

    async def test_no_fee_configured(self, use_case, invoice):
        result = await use_case.execute(ApplyLateFeeCommandDTO(invoice_id=12))

        assert result.error.code == "LATE_FEE_NOT_APPLICABLE"
        assert len(invoice.get_line_items()) == 1

    async def test_paid_invoice_rejected(self, use_case, invoice):
        invoice.status = InvoiceStatus.PAID

        result = await use_case.execute(ApplyLateFeeCommandDTO(invoice_id=12, amount=Decimal("5")))

        assert result.error.code == "INVOICE_NOT_PAYABLE"


@pytest.mark.asyncio
class TestCreateCredit:
    @pytest.fixture
    def credit_repo(self):
        repo = MagicMock()
        repo.generate_number = AsyncMock(return_value="CR-000004")

        async def create(credit):
            credit.id = 4
            return credit

        repo.create = AsyncMock(side_effect=create)
        return repo

    async def test_credit_becomes_available(
        self, mock_uow, client_repo, invoice_repo, credit_repo, ledger, client
    ):
        # Arrange
        use_case = CreateCredit(mock_uow, client_repo, invoice_repo, credit_repo, ledger)

        # Act
        result = await use_case.execute(CreateCreditCommandDTO(client_id=7, amount=Decimal("25")))

        # Assert
        assert result.value.credit_id == 4
        assert result.value.balance == Decimal("25")
        assert client.credit_balance == Decimal("25")
        assert [e.stream for e in result.value.ledger_entries] == [LedgerStream.CREDIT_BALANCE]

    async def test_invoice_of_other_client_rejected(
        self, mock_uow, client_repo, invoice_repo, credit_repo, ledger, invoice
    ):
        invoice.client_id = 8
        use_case = CreateCredit(mock_uow, client_repo, invoice_repo, credit_repo, ledger)

        result = await use_case.execute(CreateCreditCommandDTO(client_id=7, amount=Decimal("25"), invoice_id=12))

        assert result.error.code == "INVOICE_NOT_FOUND"
        credit_repo.create.assert_not_called()


@pytest.mark.asyncio
class TestQueries:
    async def test_client_balance_formatted_in_client_currency(self, client_repo, company_repo, client, company):
        # Arrange
        client.balance = Decimal("1234.56")
        company.settings = {"currency": "USD"}

        # Act
        result = await GetClientBalance(client_repo, company_repo).execute(7)

        # Assert
        assert result.value.currency == "USD"
        assert result.value.formatted_balance == "$1,234.56"

    async def test_client_balance_unknown_client(self, client_repo, company_repo):
        client_repo.get_by_id = AsyncMock(return_value=None)

        result = await GetClientBalance(client_repo, company_repo).execute(999)

        assert result.error.code == "CLIENT_NOT_FOUND"

    async def test_ledger_entries_paginated(self, client_repo):
        # Arrange
        ledger_repo = MagicMock()
        ledger_repo.list_by_client = AsyncMock(
            return_value=[
                LedgerEntry(id=2, client_id=7, company_id=1, stream=LedgerStream.BALANCE,
                            activity=LedgerActivity.PAYMENT, adjustment=Decimal("-40"), balance=Decimal("60")),
            ]
        )
        ledger_repo.count_by_client = AsyncMock(return_value=2)

        # Act
        result = await ListLedgerEntries(ledger_repo, client_repo).execute(
            7, stream=LedgerStream.BALANCE, limit=1, offset=0
        )

        # Assert
        assert result.value.total == 2
        assert [e.entry_id for e in result.value.entries] == [2]
        ledger_repo.list_by_client.assert_called_once_with(7, stream=LedgerStream.BALANCE, limit=1, offset=0)
