"""Campaign-level frames.

Output DataFrames:
- campaign_stats_frame: Funding stats per campaign, derived the same way as
  ``LedgerService.get_campaign_stats``
- campaign_balances_frame: Fees, reserved withdrawals and available balance
  per campaign
"""

from decimal import Decimal
from typing import Dict, List

import pandas as pd

from .base import Block, BlockContext
from ..engine.aggregator import clamp_progress
from ..schemas import InvestmentStatus, RESERVING_WITHDRAWAL_STATUSES

STATS_COLUMNS = [
    "campaign_id",
    "company_name",
    "title",
    "status",
    "funding_goal",
    "minimum_investment",
    "valuation_cap",
    "discount_rate",
    "total_raised",
    "investor_count",
    "progress_percent",
    "investments_count",
    "in_flight_amount",
]

BALANCE_COLUMNS = [
    "campaign_id",
    "total_raised",
    "total_fees",
    "total_withdrawn",
    "available_balance",
]

_IN_FLIGHT = [
    InvestmentStatus.COMMITTED.value,
    InvestmentStatus.PAYMENT_PENDING.value,
    InvestmentStatus.PAYMENT_PROCESSING.value,
    InvestmentStatus.PAID.value,
]


def _decimal_sum(values) -> Decimal:
    return sum((v for v in values if not pd.isna(v)), Decimal("0"))


def _sum_by_campaign(df: pd.DataFrame, column: str) -> Dict[str, Decimal]:
    if df.empty:
        return {}
    return df.groupby("campaign_id")[column].agg(_decimal_sum).to_dict()


class CampaignStatsBlock(Block):
    """Funding stats per campaign from the investments frame.

    Only completed investments count toward total_raised and investor_count;
    progress is clamped with the report's progress ceiling.

    Inputs (from context):
        - ledger_report: LedgerReport (campaign records, progress ceiling)
        - investments_frame: From LedgerFrameBlock

    Outputs (to context):
        - campaign_stats_frame: columns STATS_COLUMNS, one row per campaign
    """

    def __init__(self, report_key: str = "ledger_report"):
        self.report_key = report_key

    def inputs(self) -> List[str]:
        return [self.report_key, "investments_frame"]

    def outputs(self) -> List[str]:
        return ["campaign_stats_frame"]

    def execute(self, context: BlockContext) -> None:
        report = context.get(self.report_key)
        investments: pd.DataFrame = context.get("investments_frame")

        completed = investments[investments["status"] == InvestmentStatus.COMPLETED.value]
        in_flight = investments[investments["status"].isin(_IN_FLIGHT)]

        raised = _sum_by_campaign(completed, "amount")
        pending = _sum_by_campaign(in_flight, "amount")
        investor_counts = (
            completed.groupby("campaign_id")["investor_id"].nunique().to_dict()
            if not completed.empty else {}
        )
        record_counts = (
            investments.groupby("campaign_id").size().to_dict()
            if not investments.empty else {}
        )

        rows = []
        for campaign in report.campaigns:
            total_raised = raised.get(campaign.id, Decimal("0"))
            rows.append({
                "campaign_id": campaign.id,
                "company_name": campaign.company_name,
                "title": campaign.title,
                "status": campaign.status.value,
                "funding_goal": campaign.funding_goal,
                "minimum_investment": campaign.minimum_investment,
                "valuation_cap": campaign.valuation_cap,
                "discount_rate": campaign.discount_rate,
                "total_raised": total_raised,
                "investor_count": int(investor_counts.get(campaign.id, 0)),
                "progress_percent": clamp_progress(
                    total_raised, campaign.funding_goal, report.progress_ceiling
                ),
                "investments_count": int(record_counts.get(campaign.id, 0)),
                "in_flight_amount": pending.get(campaign.id, Decimal("0")),
            })

        context.set("campaign_stats_frame", pd.DataFrame(rows, columns=STATS_COLUMNS))


class CampaignBalanceBlock(Block):
    """Available balance per campaign.

    available = total_raised - fees on completed investments
                - pending, approved and completed withdrawals

    Inputs (from context):
        - campaign_stats_frame: From CampaignStatsBlock
        - investments_frame, withdrawals_frame: From LedgerFrameBlock

    Outputs (to context):
        - campaign_balances_frame: columns BALANCE_COLUMNS
    """

    def inputs(self) -> List[str]:
        return ["campaign_stats_frame", "investments_frame", "withdrawals_frame"]

    def outputs(self) -> List[str]:
        return ["campaign_balances_frame"]

    def execute(self, context: BlockContext) -> None:
        stats: pd.DataFrame = context.get("campaign_stats_frame")
        investments: pd.DataFrame = context.get("investments_frame")
        withdrawals: pd.DataFrame = context.get("withdrawals_frame")

        completed = investments[investments["status"] == InvestmentStatus.COMPLETED.value]
        reserving = withdrawals[
            withdrawals["status"].isin([s.value for s in RESERVING_WITHDRAWAL_STATUSES])
        ]
        fees = _sum_by_campaign(completed, "fee_amount")
        withdrawn = _sum_by_campaign(reserving, "amount")

        rows = []
        for row in stats.itertuples(index=False):
            total_fees = fees.get(row.campaign_id, Decimal("0"))
            total_withdrawn = withdrawn.get(row.campaign_id, Decimal("0"))
            rows.append({
                "campaign_id": row.campaign_id,
                "total_raised": row.total_raised,
                "total_fees": total_fees,
                "total_withdrawn": total_withdrawn,
                "available_balance": row.total_raised - total_fees - total_withdrawn,
            })

        context.set("campaign_balances_frame", pd.DataFrame(rows, columns=BALANCE_COLUMNS))
