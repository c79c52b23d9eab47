# coastal_watch/services/__init__.py


class ServiceError(Exception):
    """Base error for service-layer failures; `status` is the HTTP code the API answers with."""
    status = 500
    code = "service_error"

    def __init__(self, message, detail=None):
        super().__init__(message)
        self.detail = detail


class ValidationError(ServiceError):
    status = 400
    code = "invalid_request"


class ServiceNotConfigured(ServiceError):
    status = 503
    code = "not_configured"


class UpstreamError(ServiceError):
    """A third-party API answered with an error or could not be reached."""
    status = 502
    code = "upstream_error"

    def __init__(self, message, detail=None, upstream_status=None):
        super().__init__(message, detail)
        self.upstream_status = upstream_status
