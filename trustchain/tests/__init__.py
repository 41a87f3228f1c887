"""
Test suite for the trusted memory engine.

Focus areas:
- Hashing determinism and genesis stability
- Chain linkage and conflict retry
- Tamper detection
- Human-gated rollback and recovery
- Audited mutation denials
"""
