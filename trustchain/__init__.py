"""
Trusted Memory Hash-Chain Engine

Append-only, tamper-evident record chains for AI-operated accounts.
"""

__version__ = "0.1.0"
