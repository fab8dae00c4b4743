"""
Talent import: spreadsheet ingestion for candidates, jobs and clients.
"""

__version__ = "0.1.0"
