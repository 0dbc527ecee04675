"""
Tests for nexus/services/invoice_service.py
"""
import pytest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from nexus.services.invoice_service import generate_invoice, quote_room_charge, to_decimal, to_money


def _booking(total="5000", discount="0", gst=False, paid="0", ac=False):
    return SimpleNamespace(
        id=7, total_amount=Decimal(total), discount=Decimal(discount),
        gst_included=gst, paid_amount=Decimal(paid), booked_as_ac=ac,
    )


class TestGenerateInvoice:

    def test_gst_grand_total(self):
        invoice = generate_invoice(_booking(gst=True))
        assert invoice.tax == Decimal("600")
        assert invoice.grand_total == Decimal("5600")
        assert invoice.balance_due == Decimal("5600")
        assert [i.description for i in invoice.line_items] == ["Room Charges (Non-AC)", "GST (12%)"]

    def test_discount_applied_before_tax(self):
        invoice = generate_invoice(_booking(discount="1000", gst=True))
        assert invoice.grand_total == Decimal("4480")
        assert invoice.line_items[1].description == "Discount Applied"
        assert invoice.line_items[1].amount == Decimal("-1000")

    def test_discount_larger_than_total_clamps_to_zero(self):
        invoice = generate_invoice(_booking(total="1000", discount="1500", gst=True))
        assert invoice.grand_total == Decimal("0")
        assert invoice.tax == Decimal("0")

    def test_partial_payment_balance(self):
        invoice = generate_invoice(_booking(gst=True, paid="5000"))
        assert invoice.balance_due == Decimal("600")
        assert not invoice.is_settled

    def test_overpayment_is_settled(self):
        invoice = generate_invoice(_booking(paid="6000"))
        assert invoice.balance_due == Decimal("-1000")
        assert invoice.is_settled

    def test_ac_label(self):
        invoice = generate_invoice(_booking(ac=True))
        assert invoice.line_items[0].description == "Room Charges (AC)"


class TestQuote:

    def _room(self, ac_price="3500"):
        return SimpleNamespace(number="101", price=Decimal("2500"),
                               ac_price=Decimal(ac_price) if ac_price else None)

    def test_non_ac(self):
        assert quote_room_charge(self._room(), date(2026, 1, 1), date(2026, 1, 3), False) == Decimal("5000")

    def test_ac(self):
        assert quote_room_charge(self._room(), date(2026, 1, 1), date(2026, 1, 3), True) == Decimal("7000")

    def test_ac_unsupported(self):
        with pytest.raises(ValueError):
            quote_room_charge(self._room(None), date(2026, 1, 1), date(2026, 1, 2), True)

    def test_zero_nights(self):
        with pytest.raises(ValueError):
            quote_room_charge(self._room(), date(2026, 1, 1), date(2026, 1, 1), False)


def test_to_decimal_from_float():
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(None) == Decimal("0")


def test_to_money_rounds_half_up_to_cent():
    assert to_money(Decimal("1000.005")) == Decimal("1000.01")
    assert to_money("2500") == Decimal("2500.00")
    assert to_money(None) == Decimal("0.00")
