"""
Data Models Package

This package contains all Pydantic models used in TRIAD3.
All data flowing through the system must conform to these schemas.
"""

from src.models.records import (
    RECORD_TYPES,
    BankAccount,
    Beneficiary,
    BudgetLine,
    CohabitationContract,
    Debt,
    FinancialGoal,
    FixedAsset,
    IncomeRecord,
    Investment,
    PensionPlan,
    TaxDeclaration,
    Transaction,
    UserRecord,
    Will,
)
from src.models.subscription import (
    EntitlementState,
    SubscriptionSnapshot,
    SubscriptionStatus,
    trial_days_remaining,
)
from src.models.validation import ValidationIssue, ValidationResult
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "RECORD_TYPES",
    "BankAccount",
    "Beneficiary",
    "BudgetLine",
    "CohabitationContract",
    "Debt",
    "FinancialGoal",
    "FixedAsset",
    "IncomeRecord",
    "Investment",
    "PensionPlan",
    "TaxDeclaration",
    "Transaction",
    "UserRecord",
    "Will",
    # Subscription models
    "EntitlementState",
    "SubscriptionSnapshot",
    "SubscriptionStatus",
    "trial_days_remaining",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
