"""Cassandra driver failures treated as "storage unavailable"."""

from cassandra import DriverException, RequestExecutionException
from cassandra.cluster import NoHostAvailable


# Timeouts, unavailable replicas, lost connections. Callers wrap these into
# their own transient error type and never retry internally.
CASSANDRA_ERRORS: tuple[type[Exception], ...] = (
    DriverException,
    RequestExecutionException,
    NoHostAvailable,
)
