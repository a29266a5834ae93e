import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils.text import slugify

from ledger_core.models import (BankAccount, Company, Contact, EntityMembership,
                                Expense, Income, Purchase, Sale)
from ledger_core.services import create_bank_transfer, create_payment

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo tenant (company), user, contacts, open transactions "
        "and a couple of settled payments."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company-name",  # Define flag
            default="Demo Company",
            help="Name of the demo company to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )

    # Generate unique slug for company
    @staticmethod
    def unique_slug_for_company(name, max_tries=100):
        # Convert company name into a slug (e.g., "Test Ltd" → "test-ltd")
        base = slugify(name) or "company"
        slug = base
        i = 1
        # If plain slug is taken, append -1, -2, etc.
        while Company.objects.filter(slug=slug).exists():
            slug = f"{base}-{i}"
            i += 1
            if i > max_tries:
                raise RuntimeError("Couldn't generate unique slug")
        return slug

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        company_name = options["company_name"]
        username = options["username"]
        password = options["password"]
        today = datetime.date.today()

        # 1. Create user
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:  # if user newly created
            user.set_password(password)
            user.save()
        self.stdout.write(
            self.style.SUCCESS(f"User: {user.username} (pw={password})")
        )

        # 2. Create company, the user owns it
        company = Company.objects.create(
            name=company_name,
            slug=self.unique_slug_for_company(company_name),
            owner=user,
        )
        EntityMembership.objects.create(user=user, company=company, role="owner")
        self.stdout.write(self.style.SUCCESS(f"Created company: {company}"))

        # 3. Bank and cash accounts
        bank = BankAccount.objects.create(
            company=company, name="Main Bank", account_type="bank",
            account_number_masked="****4321",
            opening_balance=Decimal("25000.00"), current_balance=Decimal("25000.00"),
        )
        cash = BankAccount.objects.create(
            company=company, name="Petty Cash", account_type="cash",
        )
        self.stdout.write(self.style.SUCCESS("Created accounts (Main Bank, Petty Cash)"))

        # 4. Contacts with baseline balances
        customer = Contact.objects.create(
            company=company, name="Acme Retail", contact_type="customer",
            opening_balance=Decimal("500.00"), opening_balance_type="receivable",
        )
        vendor = Contact.objects.create(
            company=company, name="Bolt Supplies", contact_type="vendor",
            opening_balance=Decimal("300.00"), opening_balance_type="payable",
        )
        self.stdout.write(self.style.SUCCESS(f"Created contacts: {customer}, {vendor}"))

        # 5. Open transactions
        sale = Sale.objects.create_pending(
            company=company, contact=customer, invoice_number="INV-0001",
            invoice_date=today, net_receivable=Decimal("1000.00"),
        )
        Sale.objects.create_pending(
            company=company, contact=customer, invoice_number="INV-0002",
            invoice_date=today, net_receivable=Decimal("750.00"),
        )
        purchase = Purchase.objects.create_pending(
            company=company, contact=vendor, invoice_number="PUR-0001",
            invoice_date=today, net_payable=Decimal("5000.00"),
        )
        Expense.objects.create_pending(
            company=company, contact=vendor, date=today, amount=Decimal("120.00"),
            notes="Delivery charges",
        )
        Income.objects.create_pending(
            company=company, contact=customer, date=today, amount=Decimal("80.00"),
            notes="Late fee",
        )
        self.stdout.write(self.style.SUCCESS("Created sales, purchase, expense, income"))

        # 6. Settle some of it through the payment engine
        receipt = create_payment(
            company,
            contact_id=customer.pk,
            bank_account_id=bank.pk,
            date=today,
            allocations=[
                {"transactionId": sale.pk, "transactionType": "sale",
                 "type": "receivable", "paidAmount": "1000.00", "amount": "1000.00"},
            ],
            description="Full settlement of INV-0001",
            user=user,
        )
        payment = create_payment(
            company,
            contact_id=vendor.pk,
            bank_account_id=bank.pk,
            date=today,
            allocations=[
                {"transactionId": purchase.pk, "transactionType": "purchase",
                 "type": "payable", "paidAmount": "2000.00", "amount": "5000.00"},
            ],
            adjustment_type="discount",
            adjustment_value="100.00",
            description="Part payment of PUR-0001",
            user=user,
        )
        self.stdout.write(self.style.SUCCESS(
            f"Recorded payments: {receipt.payment_number}, {payment.payment_number}"))

        # 7. Move some money to the cash box
        transfer = create_bank_transfer(
            company, from_bank_id=bank.pk, to_bank_id=cash.pk, date=today,
            amount="500.00", description="Float for petty cash", user=user,
        )
        self.stdout.write(self.style.SUCCESS(f"Recorded transfer: {transfer.transfer_number}"))
        self.stdout.write(self.style.SUCCESS("Demo tenant setup complete!"))
