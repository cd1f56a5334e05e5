"""Prometheus metrics for DocuSync.

Defines operational metrics for the intake pipeline.
"""

from prometheus_client import Counter, Histogram

# Intake metrics
intake_messages_total = Counter(
    "docsync_intake_messages_total",
    "Inbound messages seen by the intake gateway",
    ["channel", "status"]  # channel: graph|webhook|smtp, status: accepted|rejected|failed|skipped
)

# Processing metrics
messages_processed_total = Counter(
    "docsync_messages_processed_total",
    "Queue messages handled by the processing worker",
    ["disposition"]  # disposition: ack|retry
)

attachments_processed_total = Counter(
    "docsync_attachments_processed_total",
    "Attachments handled by the processing worker",
    ["outcome"]  # outcome: forwarded|no_match|upload_failed|rejected|forward_failed
)

message_processing_seconds = Histogram(
    "docsync_message_processing_seconds",
    "Time spent processing one queue message in seconds",
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)

# Requirement lifecycle metrics
requirement_transitions_total = Counter(
    "docsync_requirement_transitions_total",
    "Persisted requirement status changes",
    ["status"]
)

concurrency_conflicts_total = Counter(
    "docsync_concurrency_conflicts_total",
    "Optimistic-concurrency conflicts on requirement updates",
)
