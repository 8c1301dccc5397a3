"""Prometheus metrics for application flow, funding, repayments and imports"""

from prometheus_client import Counter, Histogram

# Application metrics
applications_submitted_counter = Counter(
    "taxi_loans_applications_submitted_total",
    "Loan applications submitted",
)

application_review_counter = Counter(
    "taxi_loans_application_reviews_total",
    "Staff review decisions",
    ["status"],  # submitted | pending | approved | rejected
)

# Loan metrics
loans_funded_counter = Counter(
    "taxi_loans_funded_total",
    "Loans funded",
)

funded_principal_bucket_counter = Counter(
    "taxi_loans_funded_principal_bucket",
    "Funded principal by bucket",
    ["bucket"],  # $0-$1000, $1000-$5000, $5000+
)

payments_counter = Counter(
    "taxi_loans_payments_total",
    "Payments recorded",
    ["outcome"],  # partial | paid_off
)

overpayment_counter = Counter(
    "taxi_loans_overpayments_total",
    "Payments that exceeded the outstanding balance",
)

# Import metrics
import_rows_counter = Counter(
    "taxi_loans_import_rows_total",
    "Bulk import rows processed",
    ["entity", "result"],  # clients|loans|payments, success|skipped|error
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_funding(principal_cents: int) -> None:
    """Record funding metrics for volume and principal distribution"""
    loans_funded_counter.inc()

    if principal_cents <= 100_000:
        bucket = "$0-$1000"
    elif principal_cents <= 500_000:
        bucket = "$1000-$5000"
    else:
        bucket = "$5000+"

    funded_principal_bucket_counter.labels(bucket=bucket).inc()


def record_payment(is_paid_off: bool, overpayment_cents: int) -> None:
    payments_counter.labels(outcome="paid_off" if is_paid_off else "partial").inc()
    if overpayment_cents:
        overpayment_counter.inc()


def record_import(entity: str, success: int, skipped: int, errors: int) -> None:
    for result, count in (("success", success), ("skipped", skipped), ("error", errors)):
        if count:
            import_rows_counter.labels(entity=entity, result=result).inc(count)
