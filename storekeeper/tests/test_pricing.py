"""Tests for line-item pricing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from storekeeper.app.models.inventory import PricingUnit
from storekeeper.app.services.exceptions import InvalidRequestError
from storekeeper.app.services.pricing import (
    calculate_subtotal,
    fits_scale,
    requires_whole_quantity,
    round_money,
    validate_quantity,
)


class TestCalculateSubtotal:
    def test_piece_multiplies_price_by_quantity(self) -> None:
        assert calculate_subtotal(Decimal("10"), PricingUnit.PIECE, 3, False) == Decimal("30")

    def test_kg_price_times_kilograms(self) -> None:
        result = calculate_subtotal(Decimal("50000"), PricingUnit.KG, Decimal("0.5"), True)
        assert result == Decimal("25000")

    def test_gram_unit_scales_kilograms_by_1000(self) -> None:
        # 0.0125 per gram, 0.25 kg requested
        result = calculate_subtotal(Decimal("0.0125"), PricingUnit.G, Decimal("0.25"), True)
        assert result == Decimal("3.125")

    def test_per_100g_scales_kilograms_by_10(self) -> None:
        result = calculate_subtotal(Decimal("1.80"), PricingUnit.PER_100G, Decimal("0.75"), True)
        assert result == Decimal("13.5")

    def test_unit_ignored_when_not_weight_based(self) -> None:
        result = calculate_subtotal(Decimal("4"), PricingUnit.PER_100G, 2, False)
        assert result == Decimal("8")

    def test_no_rounding_inside_a_line(self) -> None:
        result = calculate_subtotal(Decimal("3.3333"), PricingUnit.KG, Decimal("0.333"), True)
        assert result == Decimal("1.1099889")


class TestWholeQuantity:
    @pytest.mark.parametrize(
        ("unit", "weighed", "expected"),
        [
            (PricingUnit.PIECE, False, True),
            (PricingUnit.PIECE, True, True),
            (PricingUnit.KG, True, False),
            (PricingUnit.G, True, False),
            (PricingUnit.PER_100G, True, False),
            (PricingUnit.KG, False, True),
        ],
    )
    def test_requires_whole_quantity(
        self, unit: PricingUnit, weighed: bool, expected: bool
    ) -> None:
        assert requires_whole_quantity(unit, weighed) is expected


class TestRoundMoney:
    def test_rounds_half_up_to_cents(self) -> None:
        assert round_money(Decimal("1.005")) == Decimal("1.01")
        assert round_money(Decimal("2.344")) == Decimal("2.34")


class TestScale:
    @pytest.mark.parametrize(
        ("value", "places", "expected"),
        [
            ("0.125", 3, True),
            ("0.1250000", 3, True),
            ("0.0004", 3, False),
            ("1200", 0, True),
            ("0", 3, True),
            ("0.00000001", 7, False),
        ],
    )
    def test_fits_scale(self, value: str, places: int, expected: bool) -> None:
        assert fits_scale(Decimal(value), places) is expected

    def test_weighed_quantity_limited_to_three_places(self) -> None:
        validate_quantity("Rice", Decimal("1.125"), PricingUnit.KG, True)

        with pytest.raises(InvalidRequestError, match="3 decimal places"):
            validate_quantity("Rice", Decimal("1.1255"), PricingUnit.KG, True)

    def test_piece_quantity_must_be_whole(self) -> None:
        with pytest.raises(InvalidRequestError, match="whole number"):
            validate_quantity("Soap", Decimal("2.5"), PricingUnit.PIECE, False)
