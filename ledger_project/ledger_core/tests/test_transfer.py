from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase
from django.utils import timezone

from ..exceptions import InsufficientBalanceError, NotFoundError
from ..models import AuditLog, BankAccount, BankTransfer, Company
from ..services import (create_bank_transfer, delete_bank_transfer, list_bank_transfers,
                        update_bank_transfer)
from .helpers import TODAY, LedgerSetupMixin


class BankTransferTests(LedgerSetupMixin, TestCase):
    def setUp(self):
        self.make_ledger()
        self.cash = BankAccount.objects.create(
            company=self.company, name="Cash Box", account_type="cash",
            opening_balance=Decimal("500.00"), current_balance=Decimal("500.00"))

    def transfer(self, amount, from_bank=None, to_bank=None, **kwargs):
        return create_bank_transfer(
            self.company,
            from_bank_id=(from_bank or self.bank).pk,
            to_bank_id=(to_bank or self.cash).pk,
            date=TODAY,
            amount=amount,
            **kwargs,
        )

    def test_create_moves_money_between_accounts(self):
        transfer = self.transfer("2500.00", reference_number="WIRE-9")

        self.assertEqual(self.bank_balance(), Decimal("7500.00"))
        self.assertEqual(self.bank_balance(self.cash), Decimal("3000.00"))
        self.assertEqual(transfer.transfer_number, f"BT-{timezone.now().year}-0001")
        self.assertEqual(transfer.reference_number, "WIRE-9")
        self.assertTrue(AuditLog.objects.filter(
            object_type="BankTransfer", object_id=str(transfer.pk), action="create").exists())

    def test_invalid_input_rejected_before_anything_moves(self):
        for kwargs in (
            {"amount": "0"},
            {"amount": "-5"},
            {"amount": "10", "to_bank": self.bank},
        ):
            with self.subTest(**{k: str(v) for k, v in kwargs.items()}):
                amount = kwargs.pop("amount")
                with self.assertRaises(ValidationError):
                    self.transfer(amount, **kwargs)
        with self.assertRaises(ValidationError):
            create_bank_transfer(self.company, from_bank_id=self.bank.pk, to_bank_id=None,
                                 date=TODAY, amount="10")
        self.assertEqual(self.bank_balance(), Decimal("10000.00"))
        self.assertFalse(BankTransfer.objects.exists())

    def test_transfers_never_overdraw(self):
        with self.assertRaises(InsufficientBalanceError):
            self.transfer("600.00", from_bank=self.cash, to_bank=self.bank)
        self.assertEqual(self.bank_balance(self.cash), Decimal("500.00"))
        self.assertEqual(self.bank_balance(), Decimal("10000.00"))

    def test_inactive_account_rejected(self):
        self.cash.is_active = False
        self.cash.save()
        with self.assertRaises(ValidationError):
            self.transfer("100.00")
        self.assertEqual(self.bank_balance(), Decimal("10000.00"))

    def test_other_company_account_not_found(self):
        other = Company.objects.create(name="Other Co", slug="other-co")
        foreign = BankAccount.objects.create(company=other, name="Foreign")
        with self.assertRaises(NotFoundError):
            self.transfer("100.00", to_bank=foreign)
        self.assertEqual(self.bank_balance(), Decimal("10000.00"))

    def test_update_reverses_then_reapplies(self):
        transfer = self.transfer("1000.00")
        savings = BankAccount.objects.create(company=self.company, name="Savings")

        updated = update_bank_transfer(self.company, transfer.pk, to_bank_id=savings.pk,
                                       amount="400.00", description="moved")

        self.assertEqual(updated.transfer_number, transfer.transfer_number)
        self.assertEqual(self.bank_balance(), Decimal("9600.00"))
        self.assertEqual(self.bank_balance(self.cash), Decimal("500.00"))
        self.assertEqual(self.bank_balance(savings), Decimal("400.00"))
        self.assertEqual(updated.description, "moved")

    def test_update_may_use_money_freed_by_its_own_reversal(self):
        # the source only has the old transfer's money to give back
        transfer = self.transfer("500.00", from_bank=self.cash, to_bank=self.bank)
        self.assertEqual(self.bank_balance(self.cash), Decimal("0.00"))

        update_bank_transfer(self.company, transfer.pk, amount="450.00")
        self.assertEqual(self.bank_balance(self.cash), Decimal("50.00"))
        self.assertEqual(self.bank_balance(), Decimal("10450.00"))

    def test_update_to_same_account_rejected(self):
        transfer = self.transfer("100.00")
        with self.assertRaises(ValidationError):
            update_bank_transfer(self.company, transfer.pk, to_bank_id=self.bank.pk)
        with self.assertRaises(ValidationError):
            update_bank_transfer(self.company, transfer.pk,
                                 from_bank_id=self.cash.pk, to_bank_id=self.cash.pk)
        self.assertEqual(self.bank_balance(), Decimal("9900.00"))

    def test_failed_update_keeps_old_transfer(self):
        transfer = self.transfer("100.00")
        with self.assertRaises(InsufficientBalanceError):
            update_bank_transfer(self.company, transfer.pk, amount="20000.00")
        self.assertEqual(self.bank_balance(), Decimal("9900.00"))
        self.assertEqual(self.bank_balance(self.cash), Decimal("600.00"))
        transfer.refresh_from_db()
        self.assertEqual(transfer.amount, Decimal("100.00"))

    def test_purged_transfer_number_is_not_reused(self):
        first = self.transfer("10.00")
        self.transfer("20.00")
        delete_bank_transfer(self.company, first.pk)
        BankTransfer.objects.get(pk=first.pk).delete()

        third = self.transfer("30.00")
        self.assertEqual(third.transfer_number, f"BT-{timezone.now().year}-0003")

    def test_delete_returns_money_and_is_terminal(self):
        transfer = self.transfer("1000.00")
        delete_bank_transfer(self.company, transfer.pk)

        self.assertEqual(self.bank_balance(), Decimal("10000.00"))
        self.assertEqual(self.bank_balance(self.cash), Decimal("500.00"))
        transfer.refresh_from_db()
        self.assertIsNotNone(transfer.deleted_at)

        with self.assertRaises(NotFoundError):
            delete_bank_transfer(self.company, transfer.pk)
        with self.assertRaises(NotFoundError):
            update_bank_transfer(self.company, transfer.pk, amount="5.00")

    def test_list_filters_by_account_and_hides_deleted(self):
        savings = BankAccount.objects.create(company=self.company, name="Savings")
        to_cash = self.transfer("100.00")
        to_savings = self.transfer("200.00", to_bank=savings)
        gone = self.transfer("300.00", to_bank=savings)
        delete_bank_transfer(self.company, gone.pk)

        self.assertCountEqual(list(list_bank_transfers(self.company)), [to_cash, to_savings])
        self.assertEqual(list(list_bank_transfers(self.company, bank_account_id=self.cash.pk)),
                         [to_cash])
        self.assertEqual(list(list_bank_transfers(self.company, bank_account_id=savings.pk)),
                         [to_savings])
