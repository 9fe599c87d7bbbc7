"""Prometheus collectors for the Song Library service"""

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    'song_library_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)
REQUEST_DURATION = Histogram(
    'song_library_request_duration_seconds',
    'HTTP request duration',
    ['method', 'endpoint']
)

metadata_api_requests_total = Counter(
    'metadata_api_requests_total',
    'Metadata provider lookups',
    ['status']
)
metadata_api_request_duration_seconds = Histogram(
    'metadata_api_request_duration_seconds',
    'Metadata provider lookup duration in seconds',
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

song_operations_total = Counter(
    'song_library_song_operations_total',
    'Song write operations',
    ['operation', 'status']
)
