"""
Runtime helpers: grid math for start times and interval lengths.
"""
