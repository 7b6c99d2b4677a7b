"""
Batchline REST API.

Provides DRF ViewSets for:
- Recipe (read-only)
- Run (create + lifecycle actions + events)
- Batch (ledger, quality gate and close actions)
- AdjustmentOrder (create + workflow actions)
"""
