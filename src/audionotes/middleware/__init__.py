"""HTTP middleware."""

from .performance_middleware import PerformanceMiddleware
from .request_id_middleware import RequestIDMiddleware

__all__ = ["PerformanceMiddleware", "RequestIDMiddleware"]
