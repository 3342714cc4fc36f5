"""Statement workbook configuration.

The StatementWorkbookCFG tells the Excel renderer which campaigns to include
and which sheets to write.
"""

from typing import List, Optional
from pydantic import Field

from .base import DomainModel, CampaignId


class StatementWorkbookCFG(DomainModel):
    """Configuration for a campaign statement workbook.

    Examples:
        # Every campaign, all sheets
        StatementWorkbookCFG(title="Platform statement")

        # One founder's campaign without the withdrawals sheet
        StatementWorkbookCFG(
            title="Acme seed statement",
            campaign_ids=["cmp_acme_seed"],
            include_withdrawals=False,
        )
    """

    title: str = Field(
        default="Campaign Statement",
        description="Title written at the top of the summary sheet"
    )

    campaign_ids: Optional[List[CampaignId]] = Field(
        default=None,
        description="Campaigns to include. None = every campaign in the ledger"
    )

    include_investments: bool = Field(
        default=True,
        description="Write the per-investment sheet"
    )

    include_withdrawals: bool = Field(
        default=True,
        description="Write the withdrawals sheet"
    )

    include_inactive_investments: bool = Field(
        default=False,
        description="List failed and cancelled investments on the investments sheet"
    )
