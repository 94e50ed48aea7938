"""
Export of saved estimates.
"""

from .exporters import export_csv, export_estimate, export_json

__all__ = ["export_csv", "export_estimate", "export_json"]
