import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


def money_field(**kwargs):
    return models.DecimalField(max_digits=18, decimal_places=2, **kwargs)


def obligation_fields(contact_related_name, settled_related_name, contact_nullable=False):
    """Columns every sale/purchase/expense/income carries."""
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("paid_amount", money_field(default=Decimal("0.00"))),
        ("remaining_amount", money_field(default=Decimal("0.00"))),
        ("status", models.CharField(choices=[("pending", "Pending"), ("paid", "Paid")], default="pending", max_length=10)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
        ("contact", models.ForeignKey(
            blank=contact_nullable, null=contact_nullable,
            on_delete=django.db.models.deletion.PROTECT,
            related_name=contact_related_name, to="ledger_core.contact")),
        ("bank_account", models.ForeignKey(
            blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
            related_name=settled_related_name, to="ledger_core.bankaccount")),
    ]


BALANCE_TYPES = [("payable", "Payable"), ("receivable", "Receivable")]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="owned_companies", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name_plural": "companies",
            },
        ),
        migrations.CreateModel(
            name="EntityMembership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("role", models.CharField(
                    choices=[("owner", "Owner"), ("admin", "Admin"), ("accountant", "Accountant"), ("viewer", "Viewer")],
                    default="viewer", max_length=20)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to="ledger_core.company")),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="memberships", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "user"], name="membership_company_user_idx")],
                "constraints": [models.UniqueConstraint(fields=("user", "company"), name="uq_user_company_membership")],
            },
        ),
        migrations.CreateModel(
            name="Contact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("contact_type", models.CharField(
                    choices=[("customer", "Customer"), ("vendor", "Vendor")], default="customer", max_length=20)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("opening_balance", money_field(default=Decimal("0.00"))),
                ("opening_balance_type", models.CharField(choices=BALANCE_TYPES, default="payable", max_length=20)),
                ("current_balance", money_field(default=Decimal("0.00"))),
                ("current_balance_type", models.CharField(choices=BALANCE_TYPES, default="payable", max_length=20)),
                ("balance_updated_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="contact_company_name_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("opening_balance__gte", 0), ("current_balance__gte", 0)),
                        name="contact_non_negative_balances",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("account_type", models.CharField(
                    choices=[("bank", "Bank"), ("cash", "Cash")], default="bank", max_length=20)),
                ("account_number_masked", models.CharField(blank=True, max_length=50, null=True)),
                ("opening_balance", money_field(default=Decimal("0.00"))),
                ("current_balance", money_field(default=Decimal("0.00"))),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "name"], name="bankaccount_company_name_idx")],
                "constraints": [models.UniqueConstraint(fields=("company", "name"), name="uq_company_bankaccount_name")],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=obligation_fields("sales", "settled_sales") + [
                ("invoice_number", models.CharField(max_length=64)),
                ("invoice_date", models.DateField()),
                ("net_receivable", money_field()),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("deleted_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "contact", "status"], name="sale_contact_status_idx")],
                "constraints": [models.UniqueConstraint(fields=("company", "invoice_number"), name="uq_sale_company_number")],
            },
        ),
        migrations.CreateModel(
            name="Purchase",
            fields=obligation_fields("purchases", "settled_purchases") + [
                ("invoice_number", models.CharField(max_length=64)),
                ("invoice_date", models.DateField()),
                ("net_payable", money_field()),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("deleted_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "contact", "status"], name="purchase_contact_status_idx")],
                "constraints": [models.UniqueConstraint(fields=("company", "invoice_number"), name="uq_purchase_company_number")],
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=obligation_fields("expenses", "settled_expenses", contact_nullable=True) + [
                ("date", models.DateField()),
                ("amount", money_field()),
                ("notes", models.TextField(blank=True, null=True)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "contact", "status"], name="expense_contact_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Income",
            fields=obligation_fields("incomes", "settled_incomes", contact_nullable=True) + [
                ("date", models.DateField()),
                ("amount", money_field()),
                ("notes", models.TextField(blank=True, null=True)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "contact", "status"], name="income_contact_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_number", models.CharField(max_length=32)),
                ("date", models.DateField()),
                ("amount", money_field(default=Decimal("0.00"))),
                ("payment_type", models.CharField(
                    choices=[("payment", "Payment"), ("receipt", "Receipt")], max_length=10)),
                ("description", models.TextField(blank=True, null=True)),
                ("adjustment_type", models.CharField(
                    choices=[("none", "None"), ("discount", "Discount"), ("extra_receipt", "Extra receipt"), ("surcharge", "Surcharge")],
                    default="none", max_length=20)),
                ("adjustment_value", money_field(default=Decimal("0.00"))),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("contact", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.contact")),
                ("bank_account", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="payments", to="ledger_core.bankaccount")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
                ("deleted_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "contact"], name="payment_company_contact_idx"),
                    models.Index(fields=["company", "date"], name="payment_company_date_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "payment_number"), name="uq_payment_company_number"),
                    models.CheckConstraint(
                        condition=models.Q(("amount__gte", 0), ("adjustment_value__gte", 0)),
                        name="payment_non_negative_amounts",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentAllocation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("allocation_type", models.CharField(
                    choices=[("sale", "Sale"), ("purchase", "Purchase"), ("expense", "Expense"),
                             ("income", "Income"), ("current-balance", "Current balance")],
                    max_length=20)),
                ("balance_type", models.CharField(choices=BALANCE_TYPES, max_length=20)),
                ("amount", money_field(default=Decimal("0.00"))),
                ("paid_amount", money_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("payment", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="allocations", to="ledger_core.payment")),
                ("sale", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="allocations", to="ledger_core.sale")),
                ("purchase", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="allocations", to="ledger_core.purchase")),
                ("expense", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="allocations", to="ledger_core.expense")),
                ("income", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="allocations", to="ledger_core.income")),
            ],
            options={
                "indexes": [models.Index(fields=["company", "payment"], name="allocation_company_payment_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("paid_amount__gte", 0)),
                        name="allocation_non_negative_paid",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("allocation_type", "current-balance"),
                                ("expense__isnull", True), ("income__isnull", True),
                                ("purchase__isnull", True), ("sale__isnull", True),
                            ),
                            models.Q(
                                ("allocation_type", "sale"),
                                ("expense__isnull", True), ("income__isnull", True),
                                ("purchase__isnull", True), ("sale__isnull", False),
                            ),
                            models.Q(
                                ("allocation_type", "purchase"),
                                ("expense__isnull", True), ("income__isnull", True),
                                ("purchase__isnull", False), ("sale__isnull", True),
                            ),
                            models.Q(
                                ("allocation_type", "expense"),
                                ("expense__isnull", False), ("income__isnull", True),
                                ("purchase__isnull", True), ("sale__isnull", True),
                            ),
                            models.Q(
                                ("allocation_type", "income"),
                                ("expense__isnull", True), ("income__isnull", False),
                                ("purchase__isnull", True), ("sale__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="allocation_single_target",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankTransfer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transfer_number", models.CharField(max_length=32)),
                ("date", models.DateField()),
                ("amount", money_field()),
                ("description", models.TextField(blank=True, null=True)),
                ("reference_number", models.CharField(blank=True, max_length=100, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="ledger_core.company")),
                ("from_bank", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="outgoing_transfers",
                    to="ledger_core.bankaccount")),
                ("to_bank", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT, related_name="incoming_transfers",
                    to="ledger_core.bankaccount")),
                ("created_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
                ("deleted_by", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["company", "date"], name="transfer_company_date_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "transfer_number"), name="uq_transfer_company_number"),
                    models.CheckConstraint(condition=models.Q(("amount__gt", 0)), name="transfer_positive_amount"),
                    models.CheckConstraint(
                        condition=models.Q(("from_bank", models.F("to_bank")), _negated=True),
                        name="transfer_distinct_accounts",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="ledger_core.company")),
                ("user", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["company", "user"], name="auditlog_company_user_idx"),
                    models.Index(fields=["company", "created_at"], name="auditlog_company_created_idx"),
                ],
            },
        ),
    ]
