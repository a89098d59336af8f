"""
Command-line interface for RetroCal.
"""
