"""
Tender Kernel

Pure domain layer for tender cost estimating:
- BOQ line item snapshots with Decimal costs
- Redistribution rule and target selectors
- Cost category hierarchy lookups
- Typed exceptions and structured logging
"""

__version__ = "0.1.0"
