class APIError(Exception):
    def __init__(self, code: str, message: str, http_status: int = 400, details: dict = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details


class BadRequestError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("INVALID_INPUT", message, 400, details)


class PayloadTooLargeError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("PAYLOAD_TOO_LARGE", message, 413, details)


class DownstreamError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("DOWNSTREAM_ERROR", message, 502, details)


class ServiceUnavailableError(APIError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("SERVICE_UNAVAILABLE", message, 503, details)
