"""
issuehub

Hierarchical issue tracker core with:
- Role registry (declarative capability table)
- Field-level permission evaluation
- Legacy/dual-tier priority reconciliation
- One-level parent/subtask hierarchy
- Mutation sanitizing with schema-drift fallback
"""

__version__ = "0.1.0"
