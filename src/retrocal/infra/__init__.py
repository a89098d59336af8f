"""
Infrastructure layer - logging, settings, and base exceptions.
"""
