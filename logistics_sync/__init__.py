"""
logistics-sync: streaming import and reconciliation of logistics extracts.
"""

__version__ = "0.1.0"
