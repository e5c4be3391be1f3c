from finance_api.services import budget, categories, ledger, summary

__all__ = ["budget", "categories", "ledger", "summary"]
