# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus metrics for the account engine.

Metrics:
- Validations by verdict, executions by dispatch path
- Nonce advances, fees remitted
- Engine errors by error code, unauthorized attempts by operation
"""

from prometheus_client import Counter, CollectorRegistry, generate_latest

# Create registry for metrics
metrics_registry = CollectorRegistry()

validations_total = Counter(
    'acctkit_validations_total',
    'Validation attempts that reached a verdict, by verdict (includes attempts later rolled back)',
    ['verdict'],
    registry=metrics_registry
)

executions_total = Counter(
    'acctkit_executions_total',
    'Requests executed, by dispatch path',
    ['path'],
    registry=metrics_registry
)

nonce_advances_total = Counter(
    'acctkit_nonce_advances_total',
    'Nonce consumptions that were committed',
    registry=metrics_registry
)

fees_paid_total = Counter(
    'acctkit_fees_paid_total',
    'Native value remitted to the bootloader as fees',
    registry=metrics_registry
)

engine_errors_total = Counter(
    'acctkit_engine_errors_total',
    'Failed engine operations, by error code',
    ['code'],
    registry=metrics_registry
)

unauthorized_total = Counter(
    'acctkit_unauthorized_total',
    'Calls rejected by the caller guard, by operation',
    ['op'],
    registry=metrics_registry
)


def record_validation(verdict: str) -> None:
    validations_total.labels(verdict=verdict).inc()


def record_nonce_advance() -> None:
    nonce_advances_total.inc()


def record_execution(path: str) -> None:
    executions_total.labels(path=path).inc()


def record_fee(amount: int) -> None:
    fees_paid_total.inc(amount)


def record_error(code: str) -> None:
    engine_errors_total.labels(code=code).inc()


def record_unauthorized(op: str) -> None:
    unauthorized_total.labels(op=op).inc()


def render_metrics() -> bytes:
    """Prometheus text exposition of the engine registry."""
    return generate_latest(metrics_registry)
