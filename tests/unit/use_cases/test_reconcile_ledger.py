"""Unit tests for ReconcileLedger use case

Tests cover:
- Balanced client (no discrepancies)
- Client balance, ledger snapshot and paid_to_date drift
- Tolerance
- Fix mode (corrective entries, single commit)
- Missing contacts and invitations
- Error handling
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.services.balance_ledger import BalanceLedger
from src.app.services.notification_service import BillingEventType
from src.app.use_cases.billing.dtos import DiscrepancyKind, ReconcileCommandDTO
from src.app.use_cases.billing.reconcile_ledger import ReconcileLedger
from src.domain.client import Client
from src.domain.client_contact import ClientContact
from src.domain.credit import Credit
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_invitation import InvoiceInvitation
from src.domain.ledger_entry import LedgerActivity, LedgerEntry, LedgerStream
from src.domain.payment import Payment, PaymentStatus


@pytest.fixture
def client():
    return Client(
        id=7, company_id=1, name="Jane",
        balance=Decimal("60"), paid_to_date=Decimal("40"),
    )


@pytest.fixture
def invoice():
    return Invoice(
        id=12, company_id=1, client_id=7, number="INV-000012",
        status=InvoiceStatus.PARTIAL,
        amount=Decimal("100"), balance=Decimal("60"), paid_to_date=Decimal("40"),
    )


@pytest.fixture
def contact():
    return ClientContact(id=3, client_id=7, company_id=1, is_primary=True)


@pytest.fixture
def balance_snapshot():
    return LedgerEntry(
        id=1, client_id=7, company_id=1,
        stream=LedgerStream.BALANCE, activity=LedgerActivity.PAYMENT,
        adjustment=Decimal("-40"), balance=Decimal("60"),
    )


@pytest.fixture
def repos(client, invoice, contact, balance_snapshot, mock_ledger_repo):
    client_repo = MagicMock()
    client_repo.list_ids = AsyncMock(return_value=[client.id])
    client_repo.get_by_id = AsyncMock(return_value=client)
    client_repo.update = AsyncMock(side_effect=lambda c: c)
    client_repo.list_contacts = AsyncMock(return_value=[contact])
    client_repo.create_contact = AsyncMock()

    invoice_repo = MagicMock()
    invoice_repo.list_by_client = AsyncMock(return_value=[invoice])
    invoice_repo.update = AsyncMock(side_effect=lambda i: i)
    invoice_repo.list_invitations = AsyncMock(
        return_value=[InvoiceInvitation(id=1, invoice_id=12, client_contact_id=3, key="abc")]
    )
    invoice_repo.create_invitation = AsyncMock(side_effect=lambda i: i)

    payment_repo = MagicMock()
    payment_repo.list_by_client = AsyncMock(
        return_value=[
            Payment(id=100, company_id=1, client_id=7, number="PAY-1",
                    amount=Decimal("40"), applied=Decimal("40"), status=PaymentStatus.COMPLETED)
        ]
    )

    credit_repo = MagicMock()
    credit_repo.list_by_client = AsyncMock(return_value=[])

    async def get_latest(client_id, stream):
        # corrective entries written during the run shadow the stored snapshot
        for entry in reversed(mock_ledger_repo.appended):
            if entry.client_id == client_id and entry.stream == stream:
                return entry
        return balance_snapshot if stream == LedgerStream.BALANCE else None

    mock_ledger_repo.get_latest = AsyncMock(side_effect=get_latest)

    return MagicMock(client=client_repo, invoice=invoice_repo, payment=payment_repo, credit=credit_repo)


@pytest.fixture
def mock_notification_service():
    service = MagicMock()
    service.publish = AsyncMock(return_value=True)
    return service


@pytest.fixture
def reconcile_use_case(mock_uow, repos, mock_ledger_repo, mock_notification_service):
    """ReconcileLedger use case instance with mocked dependencies"""
    return ReconcileLedger(
        uow=mock_uow,
        client_repo=repos.client,
        invoice_repo=repos.invoice,
        payment_repo=repos.payment,
        credit_repo=repos.credit,
        ledger_repo=mock_ledger_repo,
        ledger=BalanceLedger(mock_ledger_repo, repos.client, repos.invoice, repos.credit),
        notification_service=mock_notification_service,
    )


def _kinds(response):
    return [d.kind for d in response.discrepancies]


@pytest.mark.asyncio
class TestReconcileReport:
    """Report mode finds discrepancies without writing anything"""

    async def test_balanced_client_has_no_discrepancies(
        self, reconcile_use_case, mock_uow, mock_notification_service
    ):
        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        # Assert
        assert result.is_ok()
        response = result.value
        assert response.clients_checked == 1
        assert response.discrepancies_found == 0
        assert response.summary == {}
        mock_uow.commit.assert_not_called()
        mock_notification_service.publish.assert_not_called()

    async def test_detects_client_balance_drift(
        self, reconcile_use_case, client, mock_ledger_repo, mock_uow, mock_notification_service
    ):
        """
        Given: Client balance 100 while the open invoice balance is 60
        When: Reconciliation runs without fix
        Then: Balance and ledger snapshot mismatches are reported, nothing is written
        """
        # Arrange
        client.balance = Decimal("100")

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        # Assert
        response = result.value
        assert _kinds(response) == [
            DiscrepancyKind.CLIENT_BALANCE_MISMATCH,
            DiscrepancyKind.LEDGER_BALANCE_MISMATCH,
        ]
        first = response.discrepancies[0]
        assert first.expected == Decimal("60")
        assert first.actual == Decimal("100")
        assert response.uncorrected == 2
        assert client.balance == Decimal("100")
        assert mock_ledger_repo.appended == []
        mock_uow.commit.assert_not_called()

        event = mock_notification_service.publish.call_args.args[0]
        assert event.event_type == BillingEventType.LEDGER_DISCREPANCY
        assert event.payload["uncorrected"] == 2

    async def test_difference_below_tolerance_is_ignored(self, reconcile_use_case, client):
        client.balance = Decimal("60.004")

        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        assert result.value.discrepancies_found == 0

    async def test_draft_invoices_do_not_count(self, reconcile_use_case, repos, invoice):
        # Arrange
        draft = Invoice(
            id=13, company_id=1, client_id=7, number="INV-000013",
            status=InvoiceStatus.DRAFT, amount=Decimal("500"), balance=Decimal("500"),
        )
        repos.invoice.list_by_client = AsyncMock(return_value=[invoice, draft])

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        # Assert
        assert result.value.discrepancies_found == 0
        repos.invoice.list_invitations.assert_called_once_with(12)

    async def test_credit_against_invoice_reduces_expected_paid_to_date(
        self, reconcile_use_case, repos
    ):
        # Arrange
        repos.credit.list_by_client = AsyncMock(
            return_value=[
                Credit(id=4, company_id=1, client_id=7, invoice_id=12, number="CR-4",
                       amount=Decimal("10"), balance=Decimal("10"))
            ]
        )

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        # Assert
        discrepancy = result.value.discrepancies[0]
        assert discrepancy.kind == DiscrepancyKind.PAID_TO_DATE_MISMATCH
        assert discrepancy.expected == Decimal("30")
        assert discrepancy.actual == Decimal("40")

    async def test_refunds_and_failed_payments_excluded(self, reconcile_use_case, repos, client):
        # Arrange
        repos.payment.list_by_client = AsyncMock(
            return_value=[
                Payment(id=100, company_id=1, client_id=7, number="PAY-1", amount=Decimal("50"),
                        refunded=Decimal("10"), status=PaymentStatus.PARTIALLY_REFUNDED),
                Payment(id=101, company_id=1, client_id=7, number="PAY-2", amount=Decimal("99"),
                        status=PaymentStatus.FAILED),
            ]
        )

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        # Assert
        assert result.value.discrepancies_found == 0

    async def test_invoice_company_mismatch(self, reconcile_use_case, invoice):
        invoice.company_id = 2

        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        discrepancy = result.value.discrepancies[0]
        assert discrepancy.kind == DiscrepancyKind.INVOICE_COMPANY_MISMATCH
        assert discrepancy.entity_id == 12
        assert invoice.company_id == 2


@pytest.mark.asyncio
class TestReconcileFix:
    """Fix mode corrects through the ledger and commits once"""

    async def test_fix_writes_corrective_entry(
        self, reconcile_use_case, client, mock_ledger_repo, mock_uow, mock_notification_service
    ):
        """
        Given: Client balance 100 while the open invoice balance is 60
        When: Reconciliation runs with fix
        Then: One corrective entry of -40 brings the client back to 60
        """
        # Arrange
        client.balance = Decimal("100")

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO(fix=True))

        # Assert
        response = result.value
        assert _kinds(response) == [DiscrepancyKind.CLIENT_BALANCE_MISMATCH]
        assert response.corrected == 1
        assert response.uncorrected == 0
        assert client.balance == Decimal("60")

        [entry] = mock_ledger_repo.appended
        assert entry.activity == LedgerActivity.CORRECTION
        assert entry.adjustment == Decimal("-40")
        assert entry.balance == Decimal("60")
        mock_uow.commit.assert_called_once()
        mock_notification_service.publish.assert_not_called()

    async def test_second_run_after_fix_is_clean(self, reconcile_use_case, client):
        client.balance = Decimal("100")
        client.paid_to_date = Decimal("0")

        first = await reconcile_use_case.execute(ReconcileCommandDTO(fix=True))
        second = await reconcile_use_case.execute(ReconcileCommandDTO(fix=True))

        assert first.value.corrected == 2
        assert second.value.discrepancies_found == 0

    async def test_fix_creates_missing_contact_and_invitation(self, reconcile_use_case, repos):
        # Arrange
        repos.client.list_contacts = AsyncMock(return_value=[])
        repos.client.create_contact = AsyncMock(
            return_value=ClientContact(id=9, client_id=7, company_id=1, is_primary=True)
        )
        repos.invoice.list_invitations = AsyncMock(return_value=[])

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO(fix=True))

        # Assert
        assert _kinds(result.value) == [DiscrepancyKind.MISSING_CONTACT, DiscrepancyKind.MISSING_INVITATION]
        assert result.value.corrected == 2
        invitation = repos.invoice.create_invitation.call_args.args[0]
        assert invitation.invoice_id == 12
        assert invitation.client_contact_id == 9

    async def test_missing_invitation_without_contact_stays_uncorrected(self, reconcile_use_case, repos):
        # Arrange
        repos.client.list_contacts = AsyncMock(return_value=[])
        repos.invoice.list_invitations = AsyncMock(return_value=[])

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        # Assert
        assert result.value.uncorrected == 2
        repos.client.create_contact.assert_not_called()
        repos.invoice.create_invitation.assert_not_called()

    async def test_fix_moves_invoice_to_client_company(self, reconcile_use_case, repos, invoice):
        invoice.company_id = 2

        result = await reconcile_use_case.execute(ReconcileCommandDTO(fix=True))

        assert result.value.corrected == 1
        assert invoice.company_id == 1
        repos.invoice.update.assert_called_once_with(invoice)


@pytest.mark.asyncio
class TestReconcileErrors:
    async def test_unknown_client(self, reconcile_use_case, repos):
        repos.client.get_by_id = AsyncMock(return_value=None)

        result = await reconcile_use_case.execute(ReconcileCommandDTO(client_id=999))

        assert result.is_err()
        assert result.error.code == "CLIENT_NOT_FOUND"

    async def test_scoped_to_one_client(self, reconcile_use_case, repos):
        result = await reconcile_use_case.execute(ReconcileCommandDTO(client_id=7))

        assert result.value.clients_checked == 1
        repos.client.list_ids.assert_not_called()

    async def test_repository_failure(self, reconcile_use_case, repos, mock_uow):
        # Arrange
        repos.invoice.list_by_client = AsyncMock(side_effect=Exception("Database error"))

        # Act
        result = await reconcile_use_case.execute(ReconcileCommandDTO())

        # Assert
        assert result.is_err()
        assert result.error.code == "RECONCILIATION_FAILED"
        assert "Database error" in result.error.reason
        mock_uow.rollback.assert_called_once()
