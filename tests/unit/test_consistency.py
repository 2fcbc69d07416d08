"""Unit tests for invoice arithmetic consistency checks."""

import math

import pytest

from dealership.business.consistency import (
    INVOICE_TOTAL_MESSAGE,
    VAT_AMOUNT_MESSAGE,
    amounts_agree,
    check_invoice_amounts,
    invoice_total_consistent,
    line_item_total_consistent,
    round_to_cents,
    vat_amount_consistent,
)

pytestmark = [pytest.mark.unit]


class TestRoundToCents:

    def test_rounds_to_two_decimals(self):
        assert round_to_cents(10.004) == 10.0
        assert round_to_cents(10.006) == 10.01

    def test_halves_round_up(self):
        assert round_to_cents(0.125) == 0.13
        assert round_to_cents(-0.125) == -0.12

    def test_non_finite_values_pass_through(self):
        assert math.isinf(round_to_cents(float('inf')))
        assert math.isnan(round_to_cents(float('nan')))


class TestAmountComparisons:

    def test_one_cent_tolerance(self):
        assert amounts_agree(100.00, 100.01)
        assert amounts_agree(100.01, 100.00)
        assert not amounts_agree(100.00, 100.02)

    def test_one_cent_difference_survives_float_error(self):
        """1.02 - 1.01 is slightly above 0.01 in binary floating point."""
        assert 1.02 - 1.01 > 0.01
        assert amounts_agree(1.02, 1.01)
        assert not amounts_agree(1.03, 1.01)

    def test_line_item_total(self):
        assert line_item_total_consistent(3, 19.99, 59.97)
        assert line_item_total_consistent(2, 0.335, 0.67)
        assert not line_item_total_consistent(2, 10, 25)

    def test_vat_amount(self):
        assert vat_amount_consistent(1000, 5, 50)
        assert vat_amount_consistent(199.99, 5, 10.0)
        assert not vat_amount_consistent(1000, 5, 100)

    def test_invoice_total(self):
        assert invoice_total_consistent(1000, 50, 1050)
        assert not invoice_total_consistent(1000, 100, 1200)


class TestCheckInvoiceAmounts:

    def test_consistent_invoice_has_no_errors(self):
        assert check_invoice_amounts(1000, 5, 50, 1050) == []

    def test_wrong_vat_and_total_report_both(self):
        """VAT should be 50 and the total 1050; each mismatch is reported, VAT first."""
        errors = check_invoice_amounts(1000, 5, 100, 1200)

        assert errors == [VAT_AMOUNT_MESSAGE, INVOICE_TOTAL_MESSAGE]
        assert all('calculation' in message for message in errors)

    def test_total_checked_against_given_vat(self):
        """A correct total for a wrong VAT amount only fails the VAT check."""
        assert check_invoice_amounts(1000, 5, 100, 1100) == [VAT_AMOUNT_MESSAGE]
