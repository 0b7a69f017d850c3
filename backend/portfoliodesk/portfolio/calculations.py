from __future__ import annotations

from collections.abc import Mapping

from portfoliodesk.schemas.portfolio import (
    Holding,
    HoldingValuation,
    PortfolioValuation,
    SectorSummary,
)


def value_holding(holding: Holding, price: float | None) -> HoldingValuation:
    investment = holding.purchase_price * holding.quantity
    # Without a live price the holding is carried at cost.
    current_price = price if price is not None else holding.purchase_price
    present_value = current_price * holding.quantity
    gain_loss = present_value - investment
    return HoldingValuation(
        symbol=holding.symbol,
        name=holding.name or holding.symbol,
        sector=holding.sector,
        exchange=holding.exchange,
        purchase_price=holding.purchase_price,
        quantity=holding.quantity,
        investment=investment,
        current_price=current_price,
        price_available=price is not None,
        present_value=present_value,
        gain_loss=gain_loss,
        gain_loss_percent=gain_loss / investment * 100 if investment else 0.0,
    )


def apply_portfolio_percentages(valuations: list[HoldingValuation]) -> list[HoldingValuation]:
    total_investment = sum(valuation.investment for valuation in valuations)
    return [
        valuation.model_copy(
            update={
                "portfolio_percentage": (
                    valuation.investment / total_investment * 100 if total_investment else 0.0
                )
            }
        )
        for valuation in valuations
    ]


def group_by_sector(valuations: list[HoldingValuation]) -> list[SectorSummary]:
    grouped: dict[str, list[HoldingValuation]] = {}
    for valuation in valuations:
        grouped.setdefault(valuation.sector, []).append(valuation)

    summaries: list[SectorSummary] = []
    for sector, members in grouped.items():
        total_investment = sum(member.investment for member in members)
        total_present_value = sum(member.present_value for member in members)
        summaries.append(
            SectorSummary(
                sector=sector,
                total_investment=total_investment,
                total_present_value=total_present_value,
                gain_loss=total_present_value - total_investment,
                symbols=[member.symbol for member in members],
            )
        )
    return summaries


def build_portfolio(
    holdings: list[Holding], prices: Mapping[str, float | None]
) -> PortfolioValuation:
    valuations = apply_portfolio_percentages(
        [value_holding(holding, prices.get(holding.symbol)) for holding in holdings]
    )
    total_investment = sum(valuation.investment for valuation in valuations)
    total_present_value = sum(valuation.present_value for valuation in valuations)
    return PortfolioValuation(
        holdings=valuations,
        sector_summaries=group_by_sector(valuations),
        total_investment=total_investment,
        total_present_value=total_present_value,
        total_gain_loss=total_present_value - total_investment,
    )
