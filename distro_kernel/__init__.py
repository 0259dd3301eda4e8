"""
Distribution Ledger Kernel

Inventory ledger and reconciliation core for a produce-and-distribute
operation:
- Dated production batches with FEFO allocation
- Per-rider distribution records with sold/returned/rejected outcomes
- Conservation checks closed against concurrent updates
- Typed errors carrying the quantities involved
"""

__version__ = "0.1.0"
