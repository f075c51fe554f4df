# File: src/walletsim/monitoring/metrics.py

from typing import Optional
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

class MetricsCollector:
    def __init__(self, port: Optional[int] = None, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        # Ledger metrics
        self.transactions_committed = Counter(
            'walletsim_transactions_committed', 'Committed ledger rows',
            ['type'], registry=self.registry
        )
        self.transactions_rejected = Counter(
            'walletsim_transactions_rejected', 'Rejected transaction intents',
            ['reason'], registry=self.registry
        )
        self.wallet_count = Gauge('walletsim_wallets', 'Number of wallets in the store', registry=self.registry)

        # Price synchronizer metrics
        self.price_refreshes = Counter(
            'walletsim_price_refreshes', 'Price refresh attempts by outcome',
            ['outcome'], registry=self.registry
        )
        self.fetch_latency = Histogram(
            'walletsim_price_fetch_seconds', 'Price fetch latency', registry=self.registry
        )

        if port:
            start_http_server(port, registry=self.registry)

    def record_transaction(self, tx_type: str):
        self.transactions_committed.labels(type=tx_type).inc()

    def record_rejection(self, reason: str):
        self.transactions_rejected.labels(reason=reason).inc()

    def record_refresh(self, outcome: str):
        self.price_refreshes.labels(outcome=outcome).inc()

    def observe_fetch_latency(self, seconds: float):
        self.fetch_latency.observe(max(seconds, 0.0))

    def set_wallet_count(self, count: int):
        self.wallet_count.set(count)

    def sample(self, name: str, **labels) -> float:
        """Current value of a sample, 0 if it has not been recorded"""
        value = self.registry.get_sample_value(name, labels or None)
        return value or 0.0
