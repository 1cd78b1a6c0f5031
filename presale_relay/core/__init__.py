"""
Core utilities: error taxonomy and retry/backoff.

Shared by the presale builder, the submission verifier and the API layer.
"""
