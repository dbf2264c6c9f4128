"""
Dues Kernel

Foundation layer for the dues reconciliation system:
- Decimal-only Money values with ISO 4217 currencies
- Injectable clock for deterministic period boundaries
- Typed exceptions with machine-readable codes
- Structured JSON logging
- SQLAlchemy persistence for customers, payments and deliveries
"""

__version__ = "0.1.0"
