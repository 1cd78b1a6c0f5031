"""
Presale Relay: backend that co-signs and submits SPL token presale payments.

Builds partially-signed Solana transactions for a client wallet to complete,
then validates the returned signature set, broadcasts it and waits for
confirmation. Stateless between calls; the network ledger is the only record.
"""

__version__ = "1.0.0"
