"""
Salary Tracker

Personal salary and pay-stub ledger:
- a local JSON ledger of pay stubs and expenses with backup/restore
- pure analytics over the ledger (totals, keep rate, momentum, trends)
- Gemini-powered pay-stub extraction and career insights
"""

__version__ = "0.1.0"
