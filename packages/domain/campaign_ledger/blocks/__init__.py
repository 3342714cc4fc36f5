"""Computation blocks for ledger reporting.

This package turns a LedgerReport into pandas DataFrames suitable for Excel
rendering or other consumption.

Architecture:
    LedgerService.report() -> Blocks (computation) -> DataFrames (output)

Available blocks:
- LedgerFrameBlock: investments_frame, withdrawals_frame
- CampaignStatsBlock: campaign_stats_frame
- CampaignBalanceBlock: campaign_balances_frame

Usage:
    from campaign_ledger.blocks import BlockContext, BlockExecutor, default_report_blocks

    context = BlockContext()
    context.set("ledger_report", service.report())
    BlockExecutor(default_report_blocks()).execute(context)

    stats_df = context.get("campaign_stats_frame")
"""

from typing import List

from .base import Block, BlockContext, BlockExecutor, CircularDependencyError, topological_sort
from .ledger import LedgerFrameBlock
from .campaigns import CampaignStatsBlock, CampaignBalanceBlock


def default_report_blocks() -> List[Block]:
    """Every block needed for a full statement."""
    return [LedgerFrameBlock(), CampaignStatsBlock(), CampaignBalanceBlock()]


__all__ = [
    "Block",
    "BlockContext",
    "BlockExecutor",
    "CircularDependencyError",
    "topological_sort",
    "LedgerFrameBlock",
    "CampaignStatsBlock",
    "CampaignBalanceBlock",
    "default_report_blocks",
]
