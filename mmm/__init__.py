"""
MMM (Money Management) - Source Package

A personal and shared-budget expense ledger: record income and expenses,
attribute them to budget groups, watch budget alerts, read receipts with
an AI scanner, and export reports.

DESIGN PRINCIPLES:
1. AI suggests → Human edits → System validates
2. One source of truth: the Ledger Store snapshot
3. Views are pure functions of a snapshot
4. Persistence failures never lose in-memory work
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "MMM Team"
