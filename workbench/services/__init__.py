"""
Service layer: provider client, artifact store, job ledger and orchestration.
"""
