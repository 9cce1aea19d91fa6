import pytest

from sociai.generation.credit_ledger import (
    UNLIMITED_LABEL,
    CreditLedger,
    cost_of,
)
from sociai.specs.common.enums import MediaType
from sociai.specs.common.errors import QuotaExceeded


def test_costs():
    assert cost_of(MediaType.IMAGE) == 5
    assert cost_of("video") == 25


class TestDebitCredit:
    def test_debit_clamps_at_zero(self):
        ledger = CreditLedger(3)
        assert ledger.debit(5) == 0
        assert ledger.balance() == 0

    def test_credit_adds(self):
        ledger = CreditLedger(10)
        ledger.credit(150)
        assert ledger.balance() == 160

    def test_negative_amounts_rejected(self):
        ledger = CreditLedger(10)
        with pytest.raises(ValueError):
            ledger.debit(-1)
        with pytest.raises(ValueError):
            ledger.credit(-1)

    def test_negative_opening_balance_rejected(self):
        with pytest.raises(ValueError):
            CreditLedger(-5)


class TestPrivileged:
    def test_debits_are_noops(self):
        ledger = CreditLedger(40, privileged=True)
        for _ in range(20):
            ledger.debit(25)
        assert ledger.balance() == 40

    def test_display_unlimited(self):
        assert CreditLedger(0, privileged=True).display() == UNLIMITED_LABEL
        assert CreditLedger(12).display() == "12"

    def test_holds_reserve_nothing(self):
        ledger = CreditLedger(0, privileged=True)
        hold = ledger.hold(25)
        ledger.settle(hold)
        assert ledger.balance() == 0


class TestHolds:
    def test_hold_reserves_available_credits(self):
        ledger = CreditLedger(30)
        ledger.hold(25)
        assert ledger.available() == 5
        with pytest.raises(QuotaExceeded) as info:
            ledger.hold(25)
        assert info.value.required == 25
        assert info.value.available == 5

    def test_settle_debits_once(self):
        ledger = CreditLedger(30)
        hold = ledger.hold(25)
        ledger.settle(hold)
        ledger.settle(hold)
        assert ledger.balance() == 5
        assert ledger.available() == 5

    def test_release_returns_credits(self):
        ledger = CreditLedger(30)
        hold = ledger.hold(25)
        ledger.release(hold)
        assert ledger.balance() == 30
        assert ledger.available() == 30

    def test_ensure(self):
        ledger = CreditLedger(4)
        with pytest.raises(QuotaExceeded):
            ledger.ensure(5)
        ledger.ensure(4)
