"""Tests for the admin-configured system fee schedule."""

from decimal import Decimal

from closing_engine.calculations.fees import FeeSchedule, SystemFeeConfig


class TestFeeSchedule:
    """Effective fee lookup."""

    def test_hst_applicable_fee_grossed_up(self, fee_schedule):
        """HST-applicable fees are charged at 113%."""
        assert fee_schedule.effective_fee("HCRA") == Decimal("192.10")

    def test_plain_fee_charged_as_configured(self, fee_schedule):
        assert fee_schedule.effective_fee("ElectronicReg") == Decimal("85")

    def test_hst_included_fee_not_grossed_up(self, fee_schedule):
        assert fee_schedule.effective_fee("StatusCert") == Decimal("100")

    def test_unconfigured_fee_costs_nothing(self):
        assert FeeSchedule().effective_fee("HCRA") == Decimal("0")

    def test_lookup_by_key(self):
        config = SystemFeeConfig("TransactionLevy", "Transaction Levy", Decimal("65"), notes="LSO levy")
        schedule = FeeSchedule.from_configs([config])

        assert schedule.get("TransactionLevy") is config
        assert schedule.get("Missing") is None
