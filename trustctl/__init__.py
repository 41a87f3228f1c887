"""
trustctl - Trusted Memory operator CLI

Commands:
- trustctl chain append/verify/tail/status - Chain operations
- trustctl checkpoint rollback/recover/list - Human-authorized rollback
- trustctl audit log - Audit trail
- trustctl attest create/verify - Signed chain-head receipts
"""

__version__ = "0.1.0"
