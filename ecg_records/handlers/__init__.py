"""Lambda entry points behind API Gateway."""

from . import doctor_reports, record_status, regenerate_url, report

__all__ = ["doctor_reports", "record_status", "regenerate_url", "report"]
