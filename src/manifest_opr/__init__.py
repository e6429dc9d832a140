"""Operator engine for manifest-based cluster changes.

Applies or deletes the documents of a manifest through the cluster's API
with namespace and existence fallbacks.

Package name uses 'manifest_opr' (short for operator) to avoid collision
with Python's stdlib 'operator' module.
"""

from manifest_opr.executor import ApplyEngine

__all__ = ['ApplyEngine']
