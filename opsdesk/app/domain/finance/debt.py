"""
Debt classification of technician settlement accounts.

A technician's balance owed to the platform is measured against their
deposit ceiling. Bands are checked most severe first:

- exceeded: balance > ceiling
- warning:  ceiling * 0.8 <= balance <= ceiling
- normal:   everything else
"""

import enum
from dataclasses import dataclass

from opsdesk.app.core.exceptions import ValidationError

DEBT_WARNING_RATIO = 0.8


class DebtBand(str, enum.Enum):
    NORMAL = "normal"
    WARNING = "warning"
    EXCEEDED = "exceeded"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {DebtBand.NORMAL: 0, DebtBand.WARNING: 1, DebtBand.EXCEEDED: 2}


@dataclass(frozen=True)
class DebtClassification:
    band: DebtBand
    ratio: float

    @property
    def progress(self) -> float:
        """Ratio clamped to [0, 1] for progress bars."""
        return min(max(self.ratio, 0.0), 1.0)


def classify_debt(balance: float, deposit_ceiling: float) -> DebtClassification:
    if deposit_ceiling < 0:
        raise ValidationError(
            "Deposit ceiling cannot be negative",
            details={"deposit_ceiling": deposit_ceiling},
        )

    ratio = balance / deposit_ceiling if deposit_ceiling > 0 else 0.0

    if balance > deposit_ceiling:
        band = DebtBand.EXCEEDED
    elif deposit_ceiling == 0:
        # nothing owed and no deposit on file
        band = DebtBand.NORMAL
    elif balance >= deposit_ceiling * DEBT_WARNING_RATIO:
        band = DebtBand.WARNING
    else:
        band = DebtBand.NORMAL
    return DebtClassification(band=band, ratio=ratio)
