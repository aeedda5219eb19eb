"""
Photo Cache Module

Dual-tier rotating image cache over a random-photo provider.

Components:
-----------
- **models/**: Filters, image records, partition metadata, status report
- **services/**: Key derivation, slot cache, metadata store, refill scheduler,
  background execution and the request orchestrator
"""
