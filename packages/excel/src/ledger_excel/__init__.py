"""Excel export for campaign ledger statements."""

from .statement_renderer import CampaignStatementRenderer

__all__ = ["CampaignStatementRenderer"]
