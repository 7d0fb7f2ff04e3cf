"""Custom exceptions"""
from typing import Optional


class AppError(Exception):
    """Base application error"""
    pass


class ServiceError(AppError):
    """Remote operation failed (network error or HTTP error status)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotReadyError(AppError):
    """Backend has not been reached yet"""
    pass


class ValidationError(AppError):
    """Input rejected on the client before any remote call"""
    pass


class SessionClosedError(AppError):
    """Operation settled after the session was torn down"""
    pass
