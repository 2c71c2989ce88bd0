"""Buildable value and alternative-investment comparison."""

import logging

from ..config import Settings, config
from ..models.metrics import AlternativeOutcome, AlternativeReturns, BuildableValue
from ..models.parcel import ParcelRecord
from .numeric import round_half_up, safe_div

logger = logging.getLogger(__name__)

SQM_PER_DUNAM = 1000


class BuildableCalculator:
    """What the land is worth per unit of future construction, and what the
    same money would have earned elsewhere.

    Example:
        calc = BuildableCalculator()

        value = calc.buildable_value(parcel)
        alts = calc.alternative_returns(500000, waterfall.net_profit, 4)
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or config

    def buildable_value(self, parcel: ParcelRecord) -> BuildableValue | None:
        """Price per buildable sqm and per housing unit.

        estimated_units = density x dunam; buildable area = units x assumed
        unit size.

        Returns:
            BuildableValue, or None when density, size or price is unknown.
        """
        density = parcel.density_units_per_dunam
        if not density or density <= 0 or parcel.size_sqm <= 0 or parcel.total_price <= 0:
            return None

        estimated_units = density * parcel.size_sqm / SQM_PER_DUNAM
        if estimated_units <= 0:
            return None

        total_buildable_area = estimated_units * self.settings.assumed_unit_size_sqm
        per_sqm = safe_div(parcel.total_price, total_buildable_area)
        per_unit = safe_div(parcel.total_price, estimated_units)
        if per_sqm is None or per_unit is None:
            return None

        return BuildableValue(
            density=density,
            estimated_units=estimated_units,
            total_buildable_area=total_buildable_area,
            price_per_buildable_sqm=round_half_up(per_sqm),
            price_per_unit=round_half_up(per_unit),
            efficiency_ratio=round_half_up(total_buildable_area / parcel.size_sqm, 2),
        )

    def _real_return_pct(self, nominal_rate: float | None) -> float | None:
        if nominal_rate is None:
            return None
        real = (1 + nominal_rate) / (1 + self.settings.inflation_rate) - 1
        return round_half_up(real * 100, 1)

    def _compounded(self, name: str, principal: float, rate: float, years: float) -> AlternativeOutcome:
        future_value = principal * (1 + rate) ** years
        return AlternativeOutcome(
            name=name,
            annual_rate_pct=round_half_up(rate * 100, 2),
            future_value=round_half_up(future_value),
            profit=round_half_up(future_value - principal),
            real_return_pct=self._real_return_pct(rate),
        )

    def alternative_returns(
        self,
        principal: float,
        net_profit: float,
        years: float,
    ) -> AlternativeReturns | None:
        """Compare the land investment against a bank deposit and an equity index.

        Bank and equity compound annually at the configured rates; the land
        rate is the CAGR implied by (principal + net profit) / principal.
        Real returns are inflation-adjusted: (1 + r) / (1 + inflation) - 1.

        Args:
            principal: Amount invested (the asking price)
            net_profit: Net profit of the land investment after taxes
            years: Holding period

        Returns:
            AlternativeReturns, or None if principal or years is not positive.
        """
        if principal <= 0 or years <= 0:
            return None
        s = self.settings

        land_value = principal + net_profit
        land_rate = None
        if land_value > 0:
            land_rate = (land_value / principal) ** (1 / years) - 1
        else:
            logger.debug("Land investment loses the whole principal, no land CAGR")

        land = AlternativeOutcome(
            name="land",
            annual_rate_pct=None if land_rate is None else round_half_up(land_rate * 100, 2),
            future_value=land_value,
            profit=net_profit,
            real_return_pct=self._real_return_pct(land_rate),
        )
        return AlternativeReturns(
            principal=principal,
            years=years,
            inflation_rate=s.inflation_rate,
            land=land,
            bank=self._compounded("bank", principal, s.bank_deposit_rate, years),
            equity=self._compounded("equity", principal, s.equity_index_rate, years),
        )
