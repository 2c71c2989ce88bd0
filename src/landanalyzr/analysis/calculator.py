"""Profitability calculator for land parcel investments.

This module turns a parcel's asking price and projected value into the
gross-to-net profit waterfall shown everywhere in the product, including
Israeli purchase tax, betterment levy and capital gains tax, plus CAGR,
holding costs and a mortgage estimate.
"""

import logging
import re
from datetime import datetime, timezone

from ..config import Settings, config
from ..models.metrics import (
    CAGRResult,
    DaysOnMarket,
    HoldingCosts,
    InvestmentTimeline,
    MonthlyPayment,
    ProfitWaterfall,
    StageStatus,
    TaxAuthorityComparison,
    TimelineStage,
    TransactionCosts,
)
from ..models.parcel import ParcelRecord, ZoningStage
from .numeric import pct_change, round_half_up, safe_div

logger = logging.getLogger(__name__)


def resolve_as_of(as_of: datetime | None = None) -> datetime:
    """Reference time for day counts; naive datetimes are taken as UTC."""
    if as_of is None:
        return datetime.now(timezone.utc)
    if as_of.tzinfo is None:
        return as_of.replace(tzinfo=timezone.utc)
    return as_of


# Typical months spent in each planning stage before moving to the next.
STAGE_DURATIONS_MONTHS = {
    ZoningStage.AGRICULTURAL: 0,
    ZoningStage.MASTER_PLAN_DEPOSIT: 12,
    ZoningStage.MASTER_PLAN_APPROVED: 8,
    ZoningStage.DETAILED_PLAN_PREP: 10,
    ZoningStage.DETAILED_PLAN_DEPOSIT: 6,
    ZoningStage.DETAILED_PLAN_APPROVED: 6,
    ZoningStage.DEVELOPER_TENDER: 4,
    ZoningStage.BUILDING_PERMIT: 0,
}

STAGE_LABELS = {
    ZoningStage.AGRICULTURAL: "Agricultural",
    ZoningStage.MASTER_PLAN_DEPOSIT: "Master plan deposited",
    ZoningStage.MASTER_PLAN_APPROVED: "Master plan approved",
    ZoningStage.DETAILED_PLAN_PREP: "Detailed plan in preparation",
    ZoningStage.DETAILED_PLAN_DEPOSIT: "Detailed plan deposited",
    ZoningStage.DETAILED_PLAN_APPROVED: "Detailed plan approved",
    ZoningStage.DEVELOPER_TENDER: "Developer tender",
    ZoningStage.BUILDING_PERMIT: "Building permit",
}


class ValuationCalculator:
    """Calculate profit, tax and return metrics for a land parcel.

    All rates come from the injected Settings so a tax change is one edit.
    Every method is pure: the same inputs always give the same output, and
    a non-positive denominator yields None rather than an exception.

    Example:
        calc = ValuationCalculator()

        waterfall = calc.profit_waterfall(total_price=500000, projected_value=900000)
        print(f"Net profit: {waterfall.net_profit:,.0f} ({waterfall.true_roi}%)")
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize calculator.

        Args:
            settings: Optional Settings instance. Uses the module config if not provided.
        """
        self.settings = settings or config

    # =========================================================================
    # Holding Period & Returns
    # =========================================================================

    def holding_years(self, readiness_estimate: str | None) -> int:
        """Infer holding period in years from a readiness bucket.

        "1-3" -> 2, "3-5" -> 4, "5+" -> 7; a bare number is taken as years;
        anything else falls back to the configured default.
        """
        if not readiness_estimate:
            return self.settings.default_holding_years

        for bucket, years in self.settings.holding_years_by_readiness.items():
            if bucket in readiness_estimate:
                return years

        match = re.search(r"(\d+)", readiness_estimate)
        if match and int(match.group(1)) > 0:
            return int(match.group(1))
        return self.settings.default_holding_years

    def headline_roi(self, total_price: float, projected_value: float) -> float | None:
        """Gross ROI percentage before costs and taxes.

        ROI = (Projected Value - Price) / Price x 100

        Returns:
            ROI as percentage, or None if price or projected value is unknown.
        """
        if projected_value <= 0:
            return None
        ratio = safe_div(projected_value - total_price, total_price)
        return None if ratio is None else ratio * 100

    def cagr(self, roi_percent: float | None, years: float) -> CAGRResult | None:
        """Compound annual growth rate implied by a total return.

        CAGR = ((1 + ROI/100) ^ (1/years) - 1) x 100, rounded to 1 decimal.

        Returns:
            CAGRResult, or None if years <= 0 or the return is not positive.
        """
        if roi_percent is None or roi_percent <= 0 or years <= 0:
            return None
        rate = ((1 + roi_percent / 100) ** (1 / years) - 1) * 100
        return CAGRResult(cagr=round_half_up(rate, 1), years=years)

    # =========================================================================
    # Costs
    # =========================================================================

    def transaction_costs(self, total_price: float) -> TransactionCosts:
        """Entry costs on purchase: purchase tax, attorney, appraiser, registry."""
        s = self.settings
        if total_price <= 0:
            return TransactionCosts(
                purchase_tax=0, attorney_fees=0, appraiser_fee=0, registration_fee=0
            )
        appraiser_fee = min(
            max(total_price * s.appraiser_fee_pct, s.appraiser_fee_min),
            s.appraiser_fee_max,
        )
        return TransactionCosts(
            purchase_tax=total_price * s.purchase_tax_pct,
            attorney_fees=total_price * s.attorney_fee_pct,
            appraiser_fee=appraiser_fee,
            registration_fee=s.registration_fee,
        )

    def annual_holding_costs(
        self,
        size_sqm: float,
        zoning_stage: ZoningStage | None = None,
    ) -> HoldingCosts:
        """Annual municipal tax (arnona) and management while holding the land.

        Arnona rises once the detailed plan is approved.
        """
        s = self.settings
        advanced = zoning_stage is not None and zoning_stage.is_advanced
        arnona_rate = s.arnona_per_sqm_advanced if advanced else s.arnona_per_sqm
        size = max(0.0, size_sqm)
        return HoldingCosts(
            arnona=size * arnona_rate,
            management=size * s.management_per_sqm,
            arnona_per_sqm=arnona_rate,
        )

    # =========================================================================
    # Profit Waterfall
    # =========================================================================

    def profit_waterfall(
        self,
        total_price: float,
        projected_value: float,
        holding_years: float | None = None,
        size_sqm: float = 0,
        zoning_stage: ZoningStage | None = None,
    ) -> ProfitWaterfall | None:
        """Run the gross-to-net profit pipeline.

        1. gross = projected - price
        2. deductible costs = purchase tax + attorney fees
        3. betterment levy = max(0, gross) x levy rate
        4. taxable = max(0, gross - levy - deductible costs)
        5. capital gains tax = taxable x capital gains rate
        6. net = gross - deductible costs - levy - capital gains tax

        Args:
            total_price: Asking price
            projected_value: Expected value after zoning maturity
            holding_years: Holding period (default from settings)
            size_sqm: Land area, used for holding costs
            zoning_stage: Current planning stage, used for holding costs

        Returns:
            ProfitWaterfall, or None when the projected value is unknown.
        """
        if projected_value <= 0:
            logger.debug("Projected value unknown, profit waterfall unavailable")
            return None

        s = self.settings
        total_price = max(0.0, total_price)
        years = holding_years if holding_years and holding_years > 0 else s.default_holding_years

        costs = self.transaction_costs(total_price)
        transaction_costs = costs.deductible

        gross_profit = projected_value - total_price
        betterment_levy = max(0.0, gross_profit) * s.betterment_levy_pct
        taxable_profit = max(0.0, gross_profit - betterment_levy - transaction_costs)
        capital_gains_tax = taxable_profit * s.capital_gains_pct
        net_profit = gross_profit - transaction_costs - betterment_levy - capital_gains_tax

        true_ratio = safe_div(net_profit, total_price)
        true_roi = None if true_ratio is None else round_half_up(true_ratio * 100)
        headline = self.headline_roi(total_price, projected_value)
        headline_roi = None if headline is None else round_half_up(headline)

        annual = self.annual_holding_costs(size_sqm, zoning_stage)
        holding_costs = annual.total_annual * years
        total_investment = total_price + costs.total + holding_costs

        return ProfitWaterfall(
            total_price=total_price,
            projected_value=projected_value,
            holding_years=years,
            gross_profit=gross_profit,
            costs=costs,
            transaction_costs=transaction_costs,
            betterment_levy=betterment_levy,
            taxable_profit=taxable_profit,
            capital_gains_tax=capital_gains_tax,
            net_profit=net_profit,
            annual_holding=annual,
            holding_costs=holding_costs,
            total_investment=total_investment,
            true_roi=true_roi,
            headline_roi=headline_roi,
            cagr=self.cagr(headline_roi, years),
        )

    def analyze_parcel(self, parcel: ParcelRecord) -> ProfitWaterfall | None:
        """Profit waterfall for a parcel, holding period from its readiness bucket."""
        return self.profit_waterfall(
            total_price=parcel.total_price,
            projected_value=parcel.projected_value,
            holding_years=self.holding_years(parcel.readiness_estimate),
            size_sqm=parcel.size_sqm,
            zoning_stage=parcel.zoning_stage,
        )

    # =========================================================================
    # Financing & Trust Signals
    # =========================================================================

    def monthly_payment(
        self,
        total_price: float,
        ltv: float | None = None,
        annual_rate: float | None = None,
        years: int | None = None,
    ) -> MonthlyPayment | None:
        """Estimate the monthly mortgage payment for financing the purchase.

        Uses the standard amortization formula with monthly compounding.

        Args:
            total_price: Purchase price
            ltv: Loan-to-value ratio (default from settings, 50%)
            annual_rate: Annual interest rate (e.g., 0.06 for 6%)
            years: Loan term in years

        Returns:
            MonthlyPayment, or None if price is unknown.
        """
        if total_price <= 0:
            return None
        s = self.settings
        ltv = s.mortgage_ltv if ltv is None else ltv
        annual_rate = s.mortgage_annual_rate if annual_rate is None else annual_rate
        years = years or s.mortgage_years

        loan_amount = round_half_up(total_price * ltv)
        down_payment = round_half_up(total_price) - loan_amount
        monthly_rate = annual_rate / 12
        n_payments = years * 12

        if monthly_rate > 0:
            growth = (1 + monthly_rate) ** n_payments
            monthly = round_half_up(loan_amount * (monthly_rate * growth) / (growth - 1))
        else:
            monthly = round_half_up(loan_amount / n_payments)

        return MonthlyPayment(
            monthly=monthly,
            down_payment=down_payment,
            loan_amount=loan_amount,
            total_interest=monthly * n_payments - loan_amount,
            rate=annual_rate,
            years=years,
            ltv=ltv,
        )

    def price_vs_tax_authority(self, parcel: ParcelRecord) -> TaxAuthorityComparison | None:
        """Compare asking price against the government valuation."""
        if parcel.tax_authority_value is None or parcel.total_price <= 0:
            return None
        delta = pct_change(parcel.total_price, parcel.tax_authority_value)
        if delta is None:
            return None
        return TaxAuthorityComparison(
            tax_authority_value=parcel.tax_authority_value,
            delta_pct=round_half_up(delta, 1),
        )

    # =========================================================================
    # Time on Market & Planning Timeline
    # =========================================================================

    @staticmethod
    def days_on_market(created_at: datetime | None, as_of: datetime | None = None) -> DaysOnMarket | None:
        """Whole days since listing, with a display label."""
        if created_at is None:
            return None
        as_of = resolve_as_of(as_of)
        days = max(0, (as_of - created_at).days)

        if days <= 7:
            label = "New on market"
        elif days <= 30:
            label = f"{days} days on market"
        elif days <= 90:
            label = f"{days // 7} weeks on market"
        elif days <= 365:
            label = f"{days // 30} months on market"
        else:
            label = f"{days // 365}+ years on market"
        return DaysOnMarket(days=days, label=label)

    @staticmethod
    def investment_timeline(
        zoning_stage: ZoningStage | None,
        as_of: datetime | None = None,
    ) -> InvestmentTimeline | None:
        """Planning pipeline progress and estimated completion year."""
        if zoning_stage is None:
            return None
        as_of = resolve_as_of(as_of)
        current = zoning_stage.position

        stages = []
        for stage in ZoningStage:
            if stage.position < current:
                status = StageStatus.COMPLETED
            elif stage.position == current:
                status = StageStatus.CURRENT
            else:
                status = StageStatus.FUTURE
            stages.append(
                TimelineStage(
                    stage=stage.value,
                    label=STAGE_LABELS[stage],
                    duration_months=STAGE_DURATIONS_MONTHS[stage],
                    status=status,
                )
            )

        # Durations are the time spent reaching each stage, so elapsed counts
        # every stage up to and including the current one.
        elapsed = sum(STAGE_DURATIONS_MONTHS[s] for s in ZoningStage if 0 < s.position <= current)
        remaining = sum(STAGE_DURATIONS_MONTHS[s] for s in ZoningStage if s.position > current)
        total = elapsed + remaining
        progress = round_half_up(elapsed / total * 100) if total > 0 else 100

        months_from_year_start = as_of.month - 1 + remaining
        estimated_year = as_of.year + months_from_year_start // 12

        return InvestmentTimeline(
            stages=stages,
            current_stage=zoning_stage.value,
            elapsed_months=elapsed,
            remaining_months=remaining,
            total_months=total,
            progress_pct=progress,
            estimated_year=estimated_year,
        )
