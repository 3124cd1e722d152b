from __future__ import annotations

from prometheus_client import Counter, Histogram

workflow_steps = Counter(
    "workflow_steps_total",
    "Workflow step executions by outcome",
    ["handler", "step", "status"],
)
workflow_deliveries = Counter(
    "workflow_deliveries_total",
    "Handler deliveries by final outcome",
    ["handler", "status"],
)
workflow_dead_letters = Counter(
    "workflow_dead_letters_total",
    "Deliveries that failed permanently",
    ["handler"],
)
workflow_delivery_latency = Histogram(
    "workflow_delivery_seconds",
    "Wall time of one handler delivery attempt in seconds",
    ["handler"],
)
events_published = Counter("workflow_events_published_total", "Events accepted by the bus", ["event"])
