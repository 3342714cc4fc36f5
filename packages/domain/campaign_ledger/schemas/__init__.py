"""Campaign ledger schemas.

This package contains all Pydantic models for the ledger domain layer:
- Base types and conventions
- Campaigns and derived funding stats
- Investments and their status enums
- Fee tiers and versioned fee schedules
- SAFE terms, agreement snapshots and conversion results
- Withdrawal requests and policy
- Inbound gateway events and outbound domain events
- Statement workbook configuration

Usage:
    from campaign_ledger.schemas import (
        Campaign, Investment, FeeSchedule, FeeTierRule,
        FinancingEvent, SafeTerms, WithdrawalPolicy
    )
"""

# Base types
from .base import (
    DomainModel,
    FrozenModel,
    MoneyAmount,
    PositiveAmount,
    Percentage,
    ShareCount,
    CampaignId,
    InvestmentId,
    UserId,
    RegionCode,
    REGION_PATTERN,
    GLOBAL_REGION,
    quantize_money,
)

# Campaigns
from .campaigns import (
    Campaign,
    CampaignStatus,
    CampaignStats,
)

# Investments
from .investments import (
    Investment,
    InvestmentStatus,
    PaymentStatus,
    TERMINAL_INVESTMENT_STATUSES,
)

# Fees
from .fees import (
    FeeTierRule,
    FeeSchedule,
    FeeQuote,
)

# SAFE instruments
from .instruments import (
    ConversionBasis,
    SafeTerms,
    SafeAgreementSnapshot,
    FinancingEvent,
    LiquidityEvent,
    ConversionResult,
    LiquidityPayout,
)

# Withdrawals
from .withdrawals import (
    WithdrawalRequest,
    WithdrawalStatus,
    WithdrawalPolicy,
    KycStatus,
    CampaignBalance,
    RESERVING_WITHDRAWAL_STATUSES,
)

# Events
from .events import (
    PaymentGatewayEvent,
    DomainEvent,
    LedgerEvent,
    InvestmentCommitted,
    InvestmentStatusChanged,
    InvestmentCompleted,
    SafeAgreementIssued,
    WithdrawalRequested,
    WithdrawalApproved,
    WithdrawalRejected,
    WithdrawalCompleted,
)

# Workbook
from .workbook import StatementWorkbookCFG

__all__ = [
    # Base types
    "DomainModel",
    "FrozenModel",
    "MoneyAmount",
    "PositiveAmount",
    "Percentage",
    "ShareCount",
    "CampaignId",
    "InvestmentId",
    "UserId",
    "RegionCode",
    "REGION_PATTERN",
    "GLOBAL_REGION",
    "quantize_money",
    # Campaigns
    "Campaign",
    "CampaignStatus",
    "CampaignStats",
    # Investments
    "Investment",
    "InvestmentStatus",
    "PaymentStatus",
    "TERMINAL_INVESTMENT_STATUSES",
    # Fees
    "FeeTierRule",
    "FeeSchedule",
    "FeeQuote",
    # SAFE instruments
    "ConversionBasis",
    "SafeTerms",
    "SafeAgreementSnapshot",
    "FinancingEvent",
    "LiquidityEvent",
    "ConversionResult",
    "LiquidityPayout",
    # Withdrawals
    "WithdrawalRequest",
    "WithdrawalStatus",
    "WithdrawalPolicy",
    "KycStatus",
    "CampaignBalance",
    "RESERVING_WITHDRAWAL_STATUSES",
    # Events
    "PaymentGatewayEvent",
    "DomainEvent",
    "LedgerEvent",
    "InvestmentCommitted",
    "InvestmentStatusChanged",
    "InvestmentCompleted",
    "SafeAgreementIssued",
    "WithdrawalRequested",
    "WithdrawalApproved",
    "WithdrawalRejected",
    "WithdrawalCompleted",
    # Workbook
    "StatementWorkbookCFG",
]
