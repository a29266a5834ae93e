from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from ..models import BankAccount, BankTransfer, Company, Payment, Purchase
from ..services import compute_contact_balance


class DemoTenantCommandTests(TestCase):

    def test_seed_builds_a_settled_demo_ledger(self):
        out = StringIO()
        call_command("seed_demo", company="Demo Ltd", stdout=out)

        company = Company.objects.get(slug="demo-ltd")
        self.assertEqual(company.owner.username, "demo")
        self.assertEqual(Payment.objects.for_company(company).count(), 2)
        self.assertEqual(BankTransfer.objects.for_company(company).count(), 1)

        # +1000 receipt, -1900 discounted payment, -500 to the cash box
        bank = BankAccount.objects.get(company=company, name="Main Bank")
        self.assertEqual(bank.current_balance, Decimal("23600.00"))
        purchase = Purchase.objects.get(company=company, invoice_number="PUR-0001")
        self.assertEqual(purchase.remaining_amount, Decimal("3000.00"))

        vendor = purchase.contact
        # 300 baseline + 3000 purchase + 120 expense, all payable
        balance = compute_contact_balance(company, vendor.pk)
        self.assertEqual((balance.amount, balance.direction), (Decimal("3420.00"), "payable"))
        self.assertIn("Demo ledger seeded successfully!", out.getvalue())

    def test_second_run_gets_a_fresh_slug(self):
        call_command("create_demo_tenant", company_name="Demo Ltd", stdout=StringIO())
        call_command("create_demo_tenant", company_name="Demo Ltd", stdout=StringIO())
        self.assertCountEqual(
            Company.objects.values_list("slug", flat=True), ["demo-ltd", "demo-ltd-1"])
