"""
Sheet-to-database reconciliation engine for quarterly pipeline sheets.
"""
