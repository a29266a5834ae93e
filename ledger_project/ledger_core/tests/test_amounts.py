from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase

from ..services.amounts import (PAYABLE, RECEIVABLE, Balance, flip, from_signed,
                                money, shift_balance, to_signed)


class MoneyTests(SimpleTestCase):

    def test_quantizes_to_two_places_half_up(self):
        self.assertEqual(money("10.005"), Decimal("10.01"))
        self.assertEqual(money(2.675), Decimal("2.68"))  # str() avoids float noise
        self.assertEqual(money(7), Decimal("7.00"))

    def test_blank_is_zero(self):
        self.assertEqual(money(None), Decimal("0.00"))
        self.assertEqual(money(""), Decimal("0.00"))

    def test_garbage_raises_validation_error(self):
        for bad in ("abc", "NaN", "Infinity", object()):
            with self.assertRaises(ValidationError):
                money(bad)


class SignConventionTests(SimpleTestCase):

    def test_payable_is_positive_receivable_negative(self):
        self.assertEqual(to_signed(Balance(Decimal("50"), PAYABLE)), Decimal("50.00"))
        self.assertEqual(to_signed(Balance(Decimal("50"), RECEIVABLE)), Decimal("-50.00"))

    def test_from_signed_maps_back(self):
        self.assertEqual(from_signed(Decimal("12.50")), Balance(Decimal("12.50"), PAYABLE))
        self.assertEqual(from_signed(Decimal("-12.50")), Balance(Decimal("12.50"), RECEIVABLE))

    def test_zero_is_payable(self):
        self.assertEqual(from_signed(Decimal("0")), Balance(Decimal("0.00"), PAYABLE))
        self.assertEqual(from_signed(Decimal("-0.00")).direction, PAYABLE)

    def test_unknown_direction_rejected(self):
        with self.assertRaises(ValidationError):
            to_signed(Balance(Decimal("1"), "sideways"))

    def test_flip(self):
        self.assertEqual(flip(PAYABLE), RECEIVABLE)
        self.assertEqual(flip(RECEIVABLE), PAYABLE)


class ShiftBalanceTests(SimpleTestCase):

    def test_receivable_overshoot_flips_to_payable(self):
        # 500 owed to us, 700 received against it -> we owe 200
        result = shift_balance(Balance(Decimal("500"), RECEIVABLE), RECEIVABLE, "700")
        self.assertEqual(result, Balance(Decimal("200.00"), PAYABLE))

    def test_partial_receivable_settlement_reduces(self):
        result = shift_balance(Balance(Decimal("500"), RECEIVABLE), RECEIVABLE, "200")
        self.assertEqual(result, Balance(Decimal("300.00"), RECEIVABLE))

    def test_payable_settlement_reduces_and_flips(self):
        start = Balance(Decimal("300"), PAYABLE)
        self.assertEqual(shift_balance(start, PAYABLE, "100"), Balance(Decimal("200.00"), PAYABLE))
        self.assertEqual(shift_balance(start, PAYABLE, "450"), Balance(Decimal("150.00"), RECEIVABLE))

    def test_exact_settlement_lands_on_zero_payable(self):
        result = shift_balance(Balance(Decimal("500"), RECEIVABLE), RECEIVABLE, "500")
        self.assertEqual(result, Balance(Decimal("0.00"), PAYABLE))

    def test_reverse_undoes_shift(self):
        start = Balance(Decimal("500.00"), RECEIVABLE)
        for direction in (PAYABLE, RECEIVABLE):
            shifted = shift_balance(start, direction, "700")
            self.assertEqual(shift_balance(shifted, direction, "700", reverse=True), start)
