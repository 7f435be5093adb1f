"""
Core domain models, fixed-point math primitives, and error taxonomy.

This module contains the building blocks of the CLMSR engine that are
independent of the tree storage and the ledger.
"""
