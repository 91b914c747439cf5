"""
Service layer exceptions.
"""


class ServiceError(Exception):
    """Base exception for directory service errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class RequestTimeoutError(ServiceError):
    """Request to a mirror timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to provider '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class ProviderRequestError(ServiceError):
    """Mirror answered with an error status."""

    def __init__(self, service_id: str, status_code: int, body: str = ""):
        self.status_code = status_code
        super().__init__(
            f"HTTP {status_code} from provider '{service_id}': {body[:200]}",
            service_id=service_id,
        )


class ProviderNotFoundError(ServiceError):
    """No provider registered under the given name."""

    def __init__(self, name: str):
        super().__init__(f"Provider '{name}' not found", service_id=name)
