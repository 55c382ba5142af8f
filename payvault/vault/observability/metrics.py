# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics Exporter

Metrics:
- Deposit / claim counts and amounts
- Weight updates, pause toggles
- Total weight, accumulator, participants, paused flag (gauges)
"""

from prometheus_client import Counter, Gauge, CollectorRegistry
import logging

from ...protocol.types.common import EventType

logger = logging.getLogger(__name__)

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# ACTIVITY METRICS
# ═══════════════════════════════════════════════════════════════════

deposits_total = Counter(
    'payvault_deposits_total',
    'Total number of committed deposits',
    registry=metrics_registry
)

deposited_amount_total = Counter(
    'payvault_deposited_amount_total',
    'Total value deposited (token units)',
    registry=metrics_registry
)

claims_total = Counter(
    'payvault_claims_total',
    'Total number of committed claims',
    ['kind'],
    registry=metrics_registry
)

claimed_amount_total = Counter(
    'payvault_claimed_amount_total',
    'Total value paid out (token units)',
    registry=metrics_registry
)

weight_updates_total = Counter(
    'payvault_weight_updates_total',
    'Total number of individual weight changes',
    registry=metrics_registry
)

pause_toggles_total = Counter(
    'payvault_pause_toggles_total',
    'Total number of pause/unpause transitions',
    ['state'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# STATE METRICS
# ═══════════════════════════════════════════════════════════════════

total_weight = Gauge(
    'payvault_total_weight',
    'Sum of all participant weights',
    registry=metrics_registry
)

acc_per_weight = Gauge(
    'payvault_acc_per_weight',
    'Payout accumulator per unit weight (scaled)',
    registry=metrics_registry
)

participants = Gauge(
    'payvault_participants',
    'Number of registered participants',
    registry=metrics_registry
)

paused = Gauge(
    'payvault_paused',
    '1 if the vault is paused, 0 otherwise',
    registry=metrics_registry
)

operations_committed = Gauge(
    'payvault_operations_committed',
    'Committed mutating operations (vault sequence)',
    registry=metrics_registry
)


# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════

def _on_deposit(amount: int, **_):
    deposits_total.inc()
    deposited_amount_total.inc(amount)


def _on_claim(amount: int, relayer=None, **_):
    claims_total.labels(kind="relayed" if relayer else "direct").inc()
    if amount:
        claimed_amount_total.inc(amount)


def _on_weights_updated(changes, **_):
    weight_updates_total.inc(len(changes))


def _on_paused(**_):
    pause_toggles_total.labels(state="paused").inc()


def _on_unpaused(**_):
    pause_toggles_total.labels(state="active").inc()


_HANDLERS = {
    EventType.DEPOSIT: _on_deposit,
    EventType.CLAIM: _on_claim,
    EventType.WEIGHTS_UPDATED: _on_weights_updated,
    EventType.PAUSED: _on_paused,
    EventType.UNPAUSED: _on_unpaused,
}


def attach_metrics(bus):
    """
    Subscribe the activity counters to a vault's event bus.

    Args:
        bus: EventBus instance
    """
    for event_type, handler in _HANDLERS.items():
        bus.subscribe(event_type, handler)
    logger.debug("Metrics handlers attached to event bus")


def detach_metrics(bus):
    for event_type, handler in _HANDLERS.items():
        bus.unsubscribe(event_type, handler)


def update_metrics(vault):
    """
    Update state gauges from the vault. Called when metrics are scraped.

    Args:
        vault: PayoutVault instance
    """
    total_weight.set(vault.total_weight)
    acc_per_weight.set(vault.acc_per_weight)
    participants.set(len(vault.participants()))
    paused.set(1 if vault.paused else 0)
    operations_committed.set(vault.sequence)
