from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "taskwise_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "taskwise_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

AI_CALLS_TOTAL = get_or_create_metric(
    "taskwise_ai_calls_total",
    "Gateway calls by operation and outcome",
    Counter,
    labelnames=["operation", "outcome"],
)

AI_RETRIES_TOTAL = get_or_create_metric(
    "taskwise_ai_retries_total",
    "Gateway retries by operation",
    Counter,
    labelnames=["operation"],
)

TASK_WRITES_TOTAL = get_or_create_metric(
    "taskwise_task_writes_total",
    "Repository writes by kind",
    Counter,
    labelnames=["kind"],
)

RECORD_WRITES_TOTAL = get_or_create_metric(
    "taskwise_record_writes_total",
    "Countdown and focus-timer writes by collection and kind",
    Counter,
    labelnames=["collection", "kind"],
)
