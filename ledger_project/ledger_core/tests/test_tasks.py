from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.test import TestCase, TransactionTestCase

from ..models import Company, Contact
from ..services import create_payment
from ..tasks import recompute_company_balances, refresh_contact_balance
from .helpers import TODAY, LedgerSetupMixin, allocation


class RefreshContactBalanceTaskTests(LedgerSetupMixin, TestCase):
    def setUp(self):
        self.make_ledger()

    def test_refresh_stores_snapshot(self):
        self.make_sale("1000.00")
        result = refresh_contact_balance(self.company.pk, self.customer.pk)

        self.assertEqual(result, {"amount": "1000.00", "direction": "receivable"})
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.current_balance, Decimal("1000.00"))
        self.assertEqual(self.customer.current_balance_type, "receivable")

    def test_missing_company_or_contact_is_skipped(self):
        with self.assertLogs("ledger_core.tasks", level="WARNING"):
            self.assertIsNone(refresh_contact_balance(424242, self.customer.pk))
        other = Company.objects.create(name="Other Co", slug="other-co")
        with self.assertLogs("ledger_core.tasks", level="WARNING"):
            self.assertIsNone(refresh_contact_balance(other.pk, self.customer.pk))

    def test_recompute_covers_every_live_contact(self):
        self.make_sale("300.00")
        self.make_purchase("120.00")
        Contact.objects.create(company=self.company, name="Gone Ltd")
        Contact.objects.filter(name="Gone Ltd").update(deleted_at=self.customer.created_at)

        self.assertEqual(recompute_company_balances(self.company.pk), 2)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.current_balance, Decimal("120.00"))
        self.assertEqual(self.vendor.current_balance_type, "payable")


class RefreshAfterCommitTests(LedgerSetupMixin, TransactionTestCase):
    """Real commits, so on_commit callbacks fire without capturing them."""

    def setUp(self):
        self.make_ledger()

    def test_snapshot_follows_committed_payment(self):
        sale = self.make_sale("1000.00")
        # run the task inline instead of going through the broker
        with mock.patch.object(refresh_contact_balance, "delay",
                               side_effect=refresh_contact_balance) as delay:
            create_payment(self.company, contact_id=self.customer.pk,
                           bank_account_id=self.bank.pk, date=TODAY,
                           allocations=[allocation(sale, "400.00")])

        delay.assert_called_once_with(self.company.pk, self.customer.pk)
        self.customer.refresh_from_db()
        self.assertEqual(self.customer.current_balance, Decimal("600.00"))
        self.assertEqual(self.customer.current_balance_type, "receivable")

    def test_rolled_back_payment_enqueues_nothing(self):
        sale = self.make_sale("1000.00")
        with mock.patch.object(refresh_contact_balance, "delay") as delay:
            with self.assertRaises(ValidationError):
                create_payment(self.company, contact_id=self.customer.pk,
                               bank_account_id=self.bank.pk, date=TODAY,
                               allocations=[allocation(sale, "1400.00")])
        delay.assert_not_called()
        self.customer.refresh_from_db()
        self.assertIsNone(self.customer.balance_updated_at)
