"""Domain layer for ledgerflow."""

# Services import the database layer, which imports entities from here,
# so services are exposed lazily.
_SERVICES = {
    "AccountService": "ledgerflow.domain.account",
    "SourceAccountService": "ledgerflow.domain.source_account",
    "ImportService": "ledgerflow.domain.importer",
    "BankRuleService": "ledgerflow.domain.rules",
    "ReconciliationService": "ledgerflow.domain.reconciliation",
    "ReviewService": "ledgerflow.domain.review",
    "PostingEngine": "ledgerflow.domain.posting",
    "PaymentService": "ledgerflow.domain.payments",
    "RecurringTemplateService": "ledgerflow.domain.recurring",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
