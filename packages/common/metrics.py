"""
Prometheus counters for the classification pipeline
"""
from prometheus_client import Counter

cache_lookups = Counter(
    "product_cache_lookups_total",
    "Product category cache lookups",
    ["result"],  # hit, miss, error
)

inference_calls = Counter(
    "inference_calls_total",
    "Calls to the inference backend",
    ["outcome"],  # success, error
)

invoice_classifications = Counter(
    "invoice_classifications_total",
    "Classification stage runs",
    ["outcome"],  # success, error
)
