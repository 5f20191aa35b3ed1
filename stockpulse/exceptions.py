from enum import StrEnum


class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} '{resource_id}' not found", code="NOT_FOUND")


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class ProviderErrorReason(StrEnum):
    transport_error = "transport_error"
    http_error = "http_error"
    provider_error = "provider_error"
    invalid_payload = "invalid_payload"
    missing_fields = "missing_fields"
    quota_exceeded = "quota_exceeded"


class ProviderError(AppError):
    def __init__(self, reason: ProviderErrorReason, message: str, code: str = "PROVIDER_ERROR"):
        self.reason = reason
        super().__init__(message, code=code)


class QuotaExceededError(ProviderError):
    def __init__(self, calls_today: int, max_daily_calls: int):
        self.calls_today = calls_today
        self.max_daily_calls = max_daily_calls
        super().__init__(
            ProviderErrorReason.quota_exceeded,
            f"Daily API limit reached ({calls_today}/{max_daily_calls} calls)",
            code="QUOTA_EXCEEDED",
        )


class PredictionPreconditionError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="PREDICTION_PRECONDITION")


class FallbackUnavailableError(AppError):
    def __init__(self, symbol: str):
        super().__init__(f"Failed to load data for {symbol}", code="FALLBACK_FAILED")
