import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from ..exceptions import NotFoundError
from ..services.allocation import (AllocationTarget, PaymentRequest, TargetState,
                                   compute_totals, derive_bank_reference,
                                   parse_allocation, plan_payment)
from ..services.amounts import PAYABLE, RECEIVABLE, Balance


def request_for(*allocations, adjustment_type=None, adjustment_value=None, bank_account_id=7):
    return PaymentRequest.from_payload(
        contact_id=1,
        bank_account_id=bank_account_id,
        date="2025-09-17",
        allocations=list(allocations),
        adjustment_type=adjustment_type,
        adjustment_value=adjustment_value,
    )


def pending(kind, pk, total, paid="0.00", bank_account_id=None, has_contact=True):
    total, paid = Decimal(total), Decimal(paid)
    remaining = total - paid
    return TargetState(
        kind=kind, id=pk, total=total, paid=paid, remaining=remaining,
        status="paid" if remaining <= 0 else "pending",
        bank_account_id=bank_account_id, has_contact=has_contact,
    )


""" Totals and adjustments """
class ComputeTotalsTests(SimpleTestCase):

    def test_discount_on_payable_dominant_payment(self):
        totals = compute_totals([(PAYABLE, Decimal("1000"))], "discount", "100")
        self.assertEqual(totals.payment_type, "payment")
        self.assertEqual(totals.original_amount, Decimal("1000.00"))
        self.assertEqual(totals.adjusted_amount, Decimal("900.00"))
        self.assertEqual(totals.bank_impact, Decimal("-900.00"))

    def test_discount_never_goes_below_zero(self):
        totals = compute_totals([(RECEIVABLE, Decimal("50"))], "discount", "80")
        self.assertEqual(totals.adjusted_amount, Decimal("0.00"))
        self.assertEqual(totals.bank_impact, Decimal("0.00"))

    def test_surcharge_and_extra_receipt_use_original_amount(self):
        for adjustment in ("surcharge", "extra_receipt"):
            totals = compute_totals([(RECEIVABLE, Decimal("1000"))], adjustment, "50")
            self.assertEqual(totals.original_amount, Decimal("1050.00"))
            self.assertEqual(totals.adjusted_amount, Decimal("1000.00"))
            self.assertEqual(totals.bank_impact, Decimal("1050.00"))

    def test_mixed_directions_net_out(self):
        totals = compute_totals([
            (RECEIVABLE, Decimal("700")),
            (PAYABLE, Decimal("1000")),
            (RECEIVABLE, Decimal("100")),
        ])
        self.assertEqual(totals.receivable, Decimal("800.00"))
        self.assertEqual(totals.payable, Decimal("1000.00"))
        self.assertEqual(totals.net_amount, Decimal("-200.00"))
        self.assertEqual(totals.payment_type, "payment")
        self.assertEqual(totals.bank_impact, Decimal("-200.00"))

    def test_zero_net_is_a_receipt(self):
        totals = compute_totals([(RECEIVABLE, Decimal("10")), (PAYABLE, Decimal("10"))])
        self.assertEqual(totals.payment_type, "receipt")
        self.assertEqual(totals.bank_impact, Decimal("0.00"))

    def test_unknown_adjustment_rejected(self):
        with self.assertRaises(ValidationError):
            compute_totals([(RECEIVABLE, Decimal("10"))], "bribe", "1")


""" Input validation, nothing is locked yet """
class PaymentRequestTests(SimpleTestCase):

    def test_required_fields(self):
        with self.assertRaisesMessage(ValidationError, "Required fields are missing"):
            PaymentRequest.from_payload(
                contact_id=None, bank_account_id=1, date="2025-09-17",
                allocations=[{"transactionId": "current-balance", "paidAmount": "1"}])
        with self.assertRaisesMessage(ValidationError, "Required fields are missing"):
            request_for()

    def test_invalid_adjustment_type(self):
        with self.assertRaisesMessage(ValidationError, "Invalid adjustment type"):
            request_for({"transactionId": 1, "transactionType": "sale", "paidAmount": "5"},
                        adjustment_type="bonus")

    def test_negative_amounts_rejected(self):
        with self.assertRaises(ValidationError):
            request_for({"transactionId": 1, "transactionType": "sale", "paidAmount": "-5"})
        with self.assertRaises(ValidationError):
            request_for({"transactionId": 1, "transactionType": "sale", "paidAmount": "5"},
                        adjustment_type="discount", adjustment_value="-1")

    def test_single_current_balance_allocation(self):
        with self.assertRaises(ValidationError):
            request_for(
                {"transactionId": "current-balance", "paidAmount": "5"},
                {"transactionType": "current-balance", "paidAmount": "5"},
            )

    def test_direction_defaults_to_kind(self):
        self.assertEqual(
            parse_allocation({"transactionId": 3, "transactionType": "sale", "paidAmount": "1"}).direction,
            RECEIVABLE)
        self.assertEqual(
            parse_allocation({"transactionId": 3, "transactionType": "expense", "paidAmount": "1"}).direction,
            PAYABLE)

    def test_parses_ids_and_date(self):
        request = PaymentRequest.from_payload(
            contact_id="4", bank_account_id="9", date="2025-01-31",
            allocations=[{"transactionId": "12", "transactionType": "purchase", "paidAmount": "10.5"}],
        )
        self.assertEqual(request.contact_id, 4)
        self.assertEqual(request.bank_account_id, 9)
        self.assertEqual(request.date, datetime.date(2025, 1, 31))
        self.assertEqual(request.transaction_targets, {AllocationTarget("purchase", 12)})
        self.assertEqual(request.allocations[0].paid_amount, Decimal("10.50"))

    def test_bad_transaction_type_and_date(self):
        with self.assertRaises(ValidationError):
            request_for({"transactionId": 1, "transactionType": "invoice", "paidAmount": "5"})
        with self.assertRaises(ValidationError):
            PaymentRequest.from_payload(
                contact_id=1, bank_account_id=1, date="not-a-date",
                allocations=[{"transactionId": "current-balance", "paidAmount": "1"}])


""" Planning against target snapshots """
class PlanPaymentTests(SimpleTestCase):

    def test_partial_then_full_payment(self):
        target = AllocationTarget("purchase", 1)
        request = request_for({"transactionId": 1, "transactionType": "purchase", "paidAmount": "2000"})
        plan = plan_payment(request, Balance(Decimal("0"), PAYABLE), {target: pending("purchase", 1, "5000")})
        update = plan.target_updates[target]
        self.assertEqual((update.paid, update.remaining, update.status), (Decimal("2000.00"), Decimal("3000.00"), "pending"))
        self.assertIsNone(update.bank_account_id)

        request = request_for({"transactionId": 1, "transactionType": "purchase", "paidAmount": "3000"})
        plan = plan_payment(request, Balance(Decimal("0"), PAYABLE),
                            {target: pending("purchase", 1, "5000", paid="2000")})
        update = plan.target_updates[target]
        self.assertEqual((update.paid, update.remaining, update.status), (Decimal("5000.00"), Decimal("0.00"), "paid"))
        self.assertEqual(update.bank_account_id, 7)

    def test_same_target_twice_accumulates(self):
        target = AllocationTarget("sale", 3)
        request = request_for(
            {"transactionId": 3, "transactionType": "sale", "paidAmount": "400"},
            {"transactionId": 3, "transactionType": "sale", "paidAmount": "600"},
        )
        plan = plan_payment(request, Balance(Decimal("0"), PAYABLE), {target: pending("sale", 3, "1000")})
        self.assertEqual(plan.target_updates[target].status, "paid")
        self.assertEqual(plan.totals.bank_impact, Decimal("1000.00"))

    def test_overpaying_a_target_is_rejected(self):
        target = AllocationTarget("sale", 3)
        request = request_for({"transactionId": 3, "transactionType": "sale", "paidAmount": "1000.01"})
        with self.assertRaises(ValidationError):
            plan_payment(request, Balance(Decimal("0"), PAYABLE), {target: pending("sale", 3, "1000")})

    def test_missing_target_is_not_found(self):
        request = request_for({"transactionId": 3, "transactionType": "sale", "paidAmount": "10"})
        with self.assertRaises(NotFoundError):
            plan_payment(request, Balance(Decimal("0"), PAYABLE), {})

    def test_current_balance_shifts_baseline(self):
        request = request_for({"transactionId": "current-balance", "type": "receivable", "paidAmount": "700"})
        plan = plan_payment(request, Balance(Decimal("500"), RECEIVABLE), {})
        self.assertEqual(plan.baseline_after, Balance(Decimal("200.00"), PAYABLE))
        self.assertEqual(plan.totals.bank_impact, Decimal("700.00"))

    def test_no_current_balance_leaves_baseline_alone(self):
        target = AllocationTarget("sale", 3)
        request = request_for({"transactionId": 3, "transactionType": "sale", "paidAmount": "10"})
        plan = plan_payment(request, Balance(Decimal("5"), PAYABLE), {target: pending("sale", 3, "100")})
        self.assertIsNone(plan.baseline_after)


class BankReferenceTests(SimpleTestCase):

    def test_reference_follows_full_payment(self):
        state = pending("sale", 1, "100", bank_account_id=2)
        self.assertEqual(derive_bank_reference(state, True, 9), 9)
        self.assertIsNone(derive_bank_reference(state, False, 9))

    def test_contactless_income_keeps_its_reference(self):
        state = pending("income", 1, "100", bank_account_id=2, has_contact=False)
        self.assertEqual(derive_bank_reference(state, True, 9), 2)
        self.assertEqual(derive_bank_reference(state, False, 9), 2)

    def test_income_with_contact_behaves_like_other_kinds(self):
        state = pending("income", 1, "100", bank_account_id=2, has_contact=True)
        self.assertEqual(derive_bank_reference(state, True, 9), 9)
        self.assertIsNone(derive_bank_reference(state, False, 9))
