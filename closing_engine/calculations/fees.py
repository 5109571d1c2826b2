"""Admin-editable flat fee schedule (HCRA, e-registration, status certificate...)."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Optional

from ..models.lookups import SYSTEM_FEE_HST_MULTIPLIER
from .money import ZERO, money


@dataclass
class SystemFeeConfig:
    """A configured closing fee.

    ``hst_applicable`` adds 13% HST on top of ``amount``; ``hst_included``
    means ``amount`` already contains all taxes.
    """

    key: str
    display_name: str
    amount: Decimal
    hst_applicable: bool = False
    hst_included: bool = False
    notes: str = ""


@dataclass
class FeeSchedule:
    """Read-only lookup over the configured system fees."""

    fees: Dict[str, SystemFeeConfig] = field(default_factory=dict)

    @classmethod
    def from_configs(cls, configs: Iterable[SystemFeeConfig]) -> "FeeSchedule":
        return cls({config.key: config for config in configs})

    def get(self, key: str) -> Optional[SystemFeeConfig]:
        return self.fees.get(key)

    def effective_fee(self, key: str) -> Decimal:
        """Amount charged at closing for ``key``.

        Unknown keys are fees the administrator has not configured and
        cost nothing.
        """
        fee = self.fees.get(key)
        if fee is None:
            return ZERO
        if fee.hst_applicable:
            return money(fee.amount * SYSTEM_FEE_HST_MULTIPLIER)
        return fee.amount
