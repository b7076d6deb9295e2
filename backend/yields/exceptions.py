"""
Error taxonomy for yield estimation, weather acquisition and recommendations.
"""


class YieldEstimatorError(Exception):
    """Base class for all yield estimator errors"""


class ValidationError(YieldEstimatorError):
    """Malformed or out-of-range input data"""

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = errors or {}


class ResourceNotFound(YieldEstimatorError):
    def __init__(self, resource, identifier):
        super().__init__(f"{resource} not found with id: {identifier}")
        self.resource = resource
        self.identifier = identifier


class UnauthorizedAccess(YieldEstimatorError):
    """Caller does not own the referenced farm"""


class ExternalServiceError(YieldEstimatorError):
    """Every configured weather provider failed for a call that needs a result"""

    def __init__(self, service_name, message=None):
        super().__init__(message or f"External service failure: {service_name}")
        self.service_name = service_name


class PredictionError(YieldEstimatorError):
    """Wraps an unexpected failure inside the scoring model"""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details or {}
