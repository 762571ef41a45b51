"""
Household Ledger - Source Package

The ledger and settlement engine for shared households: turns purchases,
settlement payments, fund deposits and meal records into member balances,
settlement plans and monthly fund accounting.

DESIGN PRINCIPLES:
1. One pure engine, shared by every screen and report
2. Exact decimals in, exact decimals out
3. No silent corrections
4. Every computation is auditable
5. Storage stays outside the engine
"""

__version__ = "1.0.0"
__author__ = "Household Ledger Team"
