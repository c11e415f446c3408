"""
TRIAD3 Wealth Manager - Source Package

A personal and family wealth-management application: bank accounts,
investments, assets, debts, goals, budgets, tax returns and legal
documents, behind a subscription paywall.

DESIGN PRINCIPLES:
1. Amounts are canonical Decimals; display strings live only at the edges
2. Validate before any network call
3. Every remote failure is reported, never swallowed
4. External collaborators are swappable behind interfaces
"""

__version__ = "1.0.0"
__author__ = "TRIAD3 Team"
