"""Prometheus metrics: request count by route/status, latency, upload lifecycle outcomes."""
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total requests",
    ["method", "path", "status_class"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency",
    ["method", "path"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)
UPLOAD_INTENT_TOTAL = Counter(
    "upload_intent_total",
    "Upload intents",
    ["result"],  # created | rejected | backend_error
)
VERDICT_TOTAL = Counter(
    "scan_verdict_total",
    "Scan verdicts received",
    ["verdict", "outcome"],  # outcome: applied | already_terminal
)
SWEEP_RUNS_TOTAL = Counter(
    "sweep_runs_total",
    "Reconciliation sweep runs",
    ["result"],  # completed | skipped | failed
)
SWEEP_RECORDS_TOTAL = Counter(
    "sweep_records_total",
    "Records examined by the sweep, by outcome",
    ["outcome"],  # marked_clean | marked_threat | pending | stuck | not_uploaded | raced | failed
)
SWEEP_DURATION = Histogram(
    "sweep_duration_seconds",
    "Reconciliation sweep duration",
    buckets=(0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0),
)
DOWNLOAD_URL_MINT_TOTAL = Counter(
    "download_url_mint_total",
    "Download capability mints",
)


def _status_class(status: int) -> str:
    if status < 200:
        return "1xx"
    if status < 300:
        return "2xx"
    if status < 400:
        return "3xx"
    if status < 500:
        return "4xx"
    return "5xx"


def record_request(method: str, path: str, status_code: int, latency_seconds: float) -> None:
    path = path or "/"
    # Normalize path to avoid high cardinality (e.g. /api/files/123 -> /api/files/{id})
    if path.startswith("/api/files/") and path != "/api/files/upload-intent":
        path = "/api/files/{id}"
    elif path.startswith("/api/storage/quarantine/"):
        path = "/api/storage/quarantine/{key}"
    elif path.startswith("/api/storage/permanent/"):
        path = "/api/storage/permanent/{key}"
    sc = _status_class(status_code)
    REQUEST_COUNT.labels(method=method, path=path, status_class=sc).inc()
    REQUEST_LATENCY.labels(method=method, path=path).observe(latency_seconds)


def record_upload_intent(result: str) -> None:
    UPLOAD_INTENT_TOTAL.labels(result=result).inc()


def record_verdict(verdict: str, outcome: str) -> None:
    VERDICT_TOTAL.labels(verdict=verdict, outcome=outcome).inc()


def record_sweep_run(result: str, duration_seconds: float | None = None) -> None:
    SWEEP_RUNS_TOTAL.labels(result=result).inc()
    if duration_seconds is not None:
        SWEEP_DURATION.observe(duration_seconds)


def record_sweep_outcome(outcome: str, count: int = 1) -> None:
    if count > 0:
        SWEEP_RECORDS_TOTAL.labels(outcome=outcome).inc(count)


def record_download_url_mint() -> None:
    DOWNLOAD_URL_MINT_TOTAL.inc()


def get_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
