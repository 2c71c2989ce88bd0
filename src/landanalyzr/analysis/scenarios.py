"""Sensitivity scenarios on the projected value."""

import logging

from ..config import Settings, config
from ..models.metrics import Scenario
from ..models.parcel import ZoningStage
from .calculator import ValuationCalculator

logger = logging.getLogger(__name__)

# (name, multiplier on projected value), most favorable first
SCENARIO_FACTORS = [
    ("optimistic", 1.10),
    ("base", 1.00),
    ("conservative", 0.90),
    ("pessimistic", 0.80),
]


class ScenarioGenerator:
    """Re-run the profit waterfall with the projected value scaled up or down.

    Every scenario goes through ValuationCalculator.profit_waterfall, so the
    tax pipeline holds in each one and a higher factor always yields a
    higher net profit.

    Example:
        gen = ScenarioGenerator()
        for scenario in gen.sensitivity_scenarios(500000, 900000, 4):
            print(f"{scenario.name}: {scenario.net_profit:,.0f}")
    """

    def __init__(
        self,
        settings: Settings | None = None,
        calculator: ValuationCalculator | None = None,
    ):
        self.settings = settings or config
        self.calc = calculator or ValuationCalculator(self.settings)

    def sensitivity_scenarios(
        self,
        total_price: float,
        projected_value: float,
        holding_years: float | None = None,
        size_sqm: float = 0,
        zoning_stage: ZoningStage | None = None,
    ) -> list[Scenario]:
        """Optimistic, base, conservative and pessimistic outcomes.

        Returns:
            Scenarios in that order, or an empty list when the projected
            value is unknown.
        """
        if projected_value <= 0:
            return []

        scenarios = []
        for name, factor in SCENARIO_FACTORS:
            waterfall = self.calc.profit_waterfall(
                total_price=total_price,
                projected_value=projected_value * factor,
                holding_years=holding_years,
                size_sqm=size_sqm,
                zoning_stage=zoning_stage,
            )
            if waterfall is None:
                continue
            scenarios.append(Scenario(name=name, factor=factor, waterfall=waterfall))
        return scenarios
