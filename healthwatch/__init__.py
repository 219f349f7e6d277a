"""Node health checks, status aggregation, root-cause analysis and 3x3 eigen solving."""

__version__ = "0.1.0"

__all__ = [
    "diag_buffer",
    "eigen_solver",
    "health_aggregator",
    "health_analyzer",
    "health_checker",
    "matrix",
    "messages",
    "params",
    "rate_checker",
    "status_monitor",
    "system_status_subscriber",
]