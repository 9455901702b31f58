"""
System failure error classifications.

These exceptions abort the operation that raised them. Only configuration
errors are fatal to the process, and only before the decision loop starts.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for failures that abort the current operation."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class ExecutionError(SystemFailureError):
    """Order rejected or failed at the execution gateway."""

    def __init__(self, message: str, side: Optional[str] = None,
                 client_order_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.side = side
        self.client_order_id = client_order_id


class StateTransitionError(SystemFailureError):
    """Attempted position transition that is not valid from the current state."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class ConfigurationError(SystemFailureError):
    """Invalid or incomplete run configuration."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
