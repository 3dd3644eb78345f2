"""
Test suite for cdpsim

Contains:
- tests/factories.py : builders for snapshots, outcomes and collaborators
- tests/unit/        : unit tests for models, checks and actions
"""
