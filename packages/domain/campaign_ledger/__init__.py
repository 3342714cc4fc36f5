"""Campaign Ledger - investment ledger and SAFE conversion engine.

This package provides the core of an equity crowdfunding platform:
- Investment records with an explicit payment/settlement state machine
- Funding stats derived from the ledger, never stored
- Versioned fee schedules with regional tiers
- SAFE conversion at priced rounds and liquidity events
- Founder withdrawals gated on KYC, campaign progress and balance

The domain layer is designed to be:
- Framework-agnostic (no web or database dependencies)
- Testable (pure Python with Pydantic validation)
- Safe under concurrent writers (optimistic versioning per campaign)
"""

from .schemas import *  # noqa: F403, F401

__version__ = "0.1.0"
