import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model

from ..models import (BankAccount, Company, Contact, EntityMembership, Expense,
                      Income, Purchase, Sale)

TODAY = datetime.date(2025, 9, 17)


def allocation(row=None, paid="0.00", direction=None, kind=None):
    """Build an allocation payload the way a client posts it."""
    if row is None:
        payload = {"transactionId": "current-balance", "transactionType": "current-balance"}
        if direction:
            payload["type"] = direction
    else:
        payload = {
            "transactionId": row.pk,
            "transactionType": kind or row.KIND,
            "type": direction or row.DIRECTION,
            "amount": str(row.total_amount),
        }
    payload["paidAmount"] = str(paid)
    return payload


class LedgerSetupMixin:
    """One company with a funded bank account, a customer and a vendor."""

    def make_ledger(self, name="Test Co", slug="test-co", bank_balance="10000.00"):
        self.company = Company.objects.create(name=name, slug=slug)
        self.bank = BankAccount.objects.create(
            company=self.company,
            name="Main Bank",
            opening_balance=Decimal(bank_balance),
            current_balance=Decimal(bank_balance),
        )
        self.customer = Contact.objects.create(
            company=self.company, name="Acme Retail", contact_type="customer")
        self.vendor = Contact.objects.create(
            company=self.company, name="Bolt Supplies", contact_type="vendor")
        return self.company

    def make_member(self, username="alice", role="accountant"):
        user = get_user_model().objects.create_user(username=username, password="pw")
        EntityMembership.objects.create(user=user, company=self.company, role=role)
        return user

    def make_sale(self, total, number="INV-1", contact=None):
        return Sale.objects.create_pending(
            company=self.company,
            contact=contact or self.customer,
            invoice_number=number,
            invoice_date=TODAY,
            net_receivable=Decimal(total),
        )

    def make_purchase(self, total, number="PUR-1", contact=None):
        return Purchase.objects.create_pending(
            company=self.company,
            contact=contact or self.vendor,
            invoice_number=number,
            invoice_date=TODAY,
            net_payable=Decimal(total),
        )

    def make_expense(self, total, contact=None):
        return Expense.objects.create_pending(
            company=self.company, contact=contact, date=TODAY, amount=Decimal(total))

    def make_income(self, total, contact=None, bank_account=None):
        return Income.objects.create_pending(
            company=self.company, contact=contact, date=TODAY, amount=Decimal(total),
            bank_account=bank_account)

    def state_of(self, row):
        """(paid, remaining, status, bank_account_id) read back from the database."""
        row.refresh_from_db()
        return (row.paid_amount, row.remaining_amount, row.status, row.bank_account_id)

    def bank_balance(self, bank=None):
        bank = bank or self.bank
        bank.refresh_from_db()
        return bank.current_balance
