"""
Prometheus metrics for the annotations read/write service.

Metrics are organized by category:
- API metrics (request rate, latency)
- Neo4j metrics (query latency, transactions, relationship mutations)
- Annotation metrics (writes, deletes, reads)
- Messaging metrics (queue messages consumed, messages forwarded)
"""
from prometheus_client import Counter, Histogram, Gauge

# ============================================================================
# API Metrics
# ============================================================================

http_requests_total = Counter(
    'http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

http_request_size_bytes = Histogram(
    'http_request_size_bytes',
    'HTTP request size in bytes',
    ['method', 'endpoint'],
    buckets=[100, 500, 1000, 5000, 10000, 50000, 100000, 500000, 1000000]
)

# ============================================================================
# Neo4j Metrics
# ============================================================================

neo4j_connection_errors_total = Counter(
    'neo4j_connection_errors_total',
    'Total number of Neo4j connection errors'
)

neo4j_connection_duration_seconds = Histogram(
    'neo4j_connection_duration_seconds',
    'Time taken to create and verify the Neo4j driver',
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

neo4j_active_connections = Gauge(
    'neo4j_active_connections',
    'Number of open Neo4j drivers'
)

neo4j_query_duration_seconds = Histogram(
    'neo4j_query_duration_seconds',
    'Neo4j query duration in seconds',
    ['operation'],  # 'write', 'read', 'count', 'delete', etc.
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5]
)

neo4j_queries_total = Counter(
    'neo4j_queries_total',
    'Total number of Neo4j queries',
    ['operation', 'status']
)

neo4j_transactions_total = Counter(
    'neo4j_transactions_total',
    'Total number of Neo4j write transactions',
    ['status']
)

neo4j_statements_per_transaction = Histogram(
    'neo4j_statements_per_transaction',
    'Number of statements submitted in one write transaction',
    buckets=[1, 2, 5, 10, 25, 50, 100, 250]
)

neo4j_relationships_deleted_total = Counter(
    'neo4j_relationships_deleted_total',
    'Relationships deleted by statements that requested a summary'
)

# ============================================================================
# Annotation Metrics
# ============================================================================

annotations_written_total = Counter(
    'annotations_written_total',
    'Total number of annotations written',
    ['lifecycle']
)

annotation_writes_total = Counter(
    'annotation_writes_total',
    'Total number of annotation set writes',
    ['lifecycle', 'status']  # status: 'success', 'rejected', 'error'
)

annotation_deletes_total = Counter(
    'annotation_deletes_total',
    'Total number of annotation set deletes',
    ['lifecycle', 'found']
)

annotation_reads_total = Counter(
    'annotation_reads_total',
    'Total number of annotation set reads',
    ['lifecycle', 'found']
)

# ============================================================================
# Messaging Metrics
# ============================================================================

queue_messages_consumed_total = Counter(
    'queue_messages_consumed_total',
    'Total number of queue messages handled',
    ['status']  # 'success', 'skipped', 'error'
)

messages_forwarded_total = Counter(
    'messages_forwarded_total',
    'Total number of messages forwarded to the next queue',
    ['status']
)
