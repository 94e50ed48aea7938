"""
Persistence of named estimates.
"""
