"""
API server package: HTTP interface of the presale relay.

Routes delegate to the presale builder and verifier; error classes are mapped
to JSON {"error": ...} bodies here.
"""
