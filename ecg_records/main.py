"""AWS Lambda entry points for the ECG record lookup service.

Point each function's handler setting at one of the names below, e.g.
``ecg_records.main.report_handler``.
"""

from ecg_records.handlers import doctor_reports, record_status, regenerate_url, report
from ecg_records.logging_config import setup_logging

# Initialize logging
setup_logging()

report_handler = report.lambda_handler
record_status_handler = record_status.lambda_handler
doctor_reports_handler = doctor_reports.lambda_handler
regenerate_url_handler = regenerate_url.lambda_handler

__all__ = [
    "report_handler",
    "record_status_handler",
    "doctor_reports_handler",
    "regenerate_url_handler",
]


def main():
    """Main function for local testing (not used in Lambda)."""
    import structlog
    from ecg_records.config import get_settings

    logger = structlog.get_logger(__name__)
    settings = get_settings()

    logger.info(
        "ECG record lookup service initialized",
        bucket=settings.S3_BUCKET,
        region=settings.AWS_REGION,
        json_prefix=settings.JSON_PREFIX,
        pdf_prefix=settings.PDF_PREFIX,
        url_ttl=settings.PRESIGNED_URL_TTL,
    )
    print("Lambda handlers ready for API Gateway events")


if __name__ == "__main__":
    main()
