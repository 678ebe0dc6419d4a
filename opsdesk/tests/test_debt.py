"""
Unit tests for debt classification.
"""

import pytest

from opsdesk.app.core.exceptions import ValidationError
from opsdesk.app.domain.finance.debt import DebtBand, classify_debt


@pytest.mark.parametrize("balance, ceiling, band", [
    (0, 1000, DebtBand.NORMAL),
    (799.99, 1000, DebtBand.NORMAL),
    (800, 1000, DebtBand.WARNING),
    (1000, 1000, DebtBand.WARNING),
    (1000.01, 1000, DebtBand.EXCEEDED),
    (-50, 1000, DebtBand.NORMAL),
])
def test_bands(balance, ceiling, band):
    assert classify_debt(balance, ceiling).band == band


def test_ratio_and_progress():
    result = classify_debt(1500, 1000)
    
    assert result.ratio == pytest.approx(1.5)
    assert result.progress == 1.0
    assert classify_debt(-100, 1000).progress == 0.0


def test_zero_ceiling():
    assert classify_debt(0, 0).band == DebtBand.NORMAL
    assert classify_debt(0, 0).ratio == 0.0
    assert classify_debt(0.01, 0).band == DebtBand.EXCEEDED


def test_negative_ceiling_rejected():
    with pytest.raises(ValidationError):
        classify_debt(100, -1)


def test_band_severity_order():
    assert DebtBand.NORMAL.severity < DebtBand.WARNING.severity < DebtBand.EXCEEDED.severity
