"""
Test suite for CLMSR engine

Contains:
- tests/unit/          : Unit tests for individual modules
"""
