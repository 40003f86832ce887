from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Histogram, generate_latest


_CLAIM_ATTEMPTS = Counter(
    "dropspot_claim_attempts_total",
    "Claim attempts by outcome.",
    labelnames=("outcome",),
)
_CLAIM_LATENCY = Histogram(
    "dropspot_claim_latency_seconds",
    "Time spent inside the claim unit of work, including lock wait.",
)
_WAITLIST_ACTIONS = Counter(
    "dropspot_waitlist_actions_total",
    "Waitlist join/leave calls by action and outcome.",
    labelnames=("action", "outcome"),
)
_CODE_COLLISIONS = Counter(
    "dropspot_claim_code_collisions_total",
    "Generated claim codes rejected because they were already issued.",
)
_ADMIN_MUTATIONS = Counter(
    "dropspot_admin_drop_mutations_total",
    "Admin drop mutations by operation and outcome.",
    labelnames=("operation", "outcome"),
)


def record_claim(*, outcome: str, latency_s: float) -> None:
    _CLAIM_ATTEMPTS.labels(outcome).inc()
    if latency_s >= 0:
        _CLAIM_LATENCY.observe(latency_s)


def record_waitlist_action(*, action: str, outcome: str) -> None:
    _WAITLIST_ACTIONS.labels(action, outcome).inc()


def record_code_collision() -> None:
    _CODE_COLLISIONS.inc()


def record_admin_mutation(*, operation: str, outcome: str) -> None:
    _ADMIN_MUTATIONS.labels(operation, outcome).inc()


def metrics_payload() -> tuple[bytes, str]:
    payload = generate_latest(REGISTRY)
    return payload, str(CONTENT_TYPE_LATEST)
