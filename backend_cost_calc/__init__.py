"""
Backend cost calculator.

Monthly cost estimates for database, auth, storage, functions and realtime
usage on the primary provider and its competitors.
"""

__version__ = "0.1.0"
