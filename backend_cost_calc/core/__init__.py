"""
Core modules for the backend cost calculator.

This package contains the pricing engine, the aggregator and the
reactive estimate session.
"""
