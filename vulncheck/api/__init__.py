"""
HTTP API, configuration and the credit ledger.
"""
