"""Record-level frames from a ledger report.

Output DataFrames:
- investments_frame: One row per investment record (all statuses)
- withdrawals_frame: One row per withdrawal request

Money columns hold Decimal values so campaign totals computed from the
frames match the engine to the cent.
"""

from typing import List

import pandas as pd

from .base import Block, BlockContext

INVESTMENT_COLUMNS = [
    "investment_id",
    "campaign_id",
    "investor_id",
    "region",
    "status",
    "payment_status",
    "amount",
    "fee_tier",
    "fee_percentage",
    "fee_amount",
    "net_amount",
    "fee_schedule_version",
    "agreement_signed",
    "created_at",
    "completed_at",
]

WITHDRAWAL_COLUMNS = [
    "withdrawal_id",
    "campaign_id",
    "founder_id",
    "amount",
    "status",
    "requested_at",
    "processed_at",
    "admin_notes",
    "policy_version",
]


class LedgerFrameBlock(Block):
    """Flattens investments and withdrawals of a LedgerReport into DataFrames.

    Inputs (from context):
        - ledger_report: LedgerReport from ``LedgerService.report()``

    Outputs (to context):
        - investments_frame: columns INVESTMENT_COLUMNS, statuses as plain strings
        - withdrawals_frame: columns WITHDRAWAL_COLUMNS
    """

    def __init__(self, report_key: str = "ledger_report"):
        self.report_key = report_key

    def inputs(self) -> List[str]:
        return [self.report_key]

    def outputs(self) -> List[str]:
        return ["investments_frame", "withdrawals_frame"]

    def execute(self, context: BlockContext) -> None:
        report = context.get(self.report_key)
        context.set("investments_frame", self._investments(report.investments))
        context.set("withdrawals_frame", self._withdrawals(report.withdrawals))

    def _investments(self, investments) -> pd.DataFrame:
        rows = [
            {
                "investment_id": inv.id,
                "campaign_id": inv.campaign_id,
                "investor_id": inv.investor_id,
                "region": inv.region,
                "status": inv.status.value,
                "payment_status": inv.payment_status.value,
                "amount": inv.amount,
                "fee_tier": inv.fee_tier,
                "fee_percentage": inv.fee_percentage,
                "fee_amount": inv.fee_amount,
                "net_amount": inv.net_amount,
                "fee_schedule_version": inv.fee_schedule_version,
                "agreement_signed": inv.agreement_signed,
                "created_at": inv.created_at,
                "completed_at": inv.completed_at,
            }
            for inv in investments
        ]
        return pd.DataFrame(rows, columns=INVESTMENT_COLUMNS)

    def _withdrawals(self, withdrawals) -> pd.DataFrame:
        rows = [
            {
                "withdrawal_id": w.id,
                "campaign_id": w.campaign_id,
                "founder_id": w.founder_id,
                "amount": w.amount,
                "status": w.status.value,
                "requested_at": w.requested_at,
                "processed_at": w.processed_at,
                "admin_notes": w.admin_notes,
                "policy_version": w.policy_version,
            }
            for w in withdrawals
        ]
        return pd.DataFrame(rows, columns=WITHDRAWAL_COLUMNS)
