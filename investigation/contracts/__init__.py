"""
Contracts Module

This module defines the explicit interfaces and data transfer objects
that form the contracts between layers. All inter-layer communication
MUST use these contracts. No layer may import implementation details
from another layer.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Closed enums for every status, relation and polarity tag
3. Confidence is a float in [0, 1] internally; integer percentages
   exist only at the graph/briefing boundary
4. All timestamps use UTC and are never mutated
5. Hash-based identity for paths so re-runs never rename them
"""
