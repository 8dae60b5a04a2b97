"""
Prometheus registry and business counters.

Services import their counters from here; the metrics blueprint serves
the same registry on /metrics.
"""
from prometheus_client import Counter, CollectorRegistry
from prometheus_client import multiprocess, REGISTRY
import os

# Check if running in multi-process mode (Gunicorn)
MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

metric_registry = registry if not MULTIPROCESS_MODE else None

invoice_transitions_total = Counter(
    'invoice_transitions_total',
    'Invoice lifecycle changes',
    ['to_status'],
    registry=metric_registry
)

stock_units_settled_total = Counter(
    'stock_units_settled_total',
    'Product units deducted from stock by processed invoices',
    registry=metric_registry
)
