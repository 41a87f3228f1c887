"""
Chain sequencing and linking.
"""

from .engine import ChainEngine

__all__ = ["ChainEngine"]
