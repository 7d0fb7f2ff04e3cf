"""Toast notification system"""
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from docdrift.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class ToastType(Enum):
    """Toast notification types"""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# Titles used when a caller passes none
DEFAULT_TITLES = {
    ToastType.INFO: "Info",
    ToastType.SUCCESS: "Success",
    ToastType.WARNING: "Warning",
    ToastType.ERROR: "Error",
}

_LOG_LEVELS = {
    ToastType.INFO: logging.INFO,
    ToastType.SUCCESS: logging.INFO,
    ToastType.WARNING: logging.WARNING,
    ToastType.ERROR: logging.WARNING,
}


@dataclass
class Toast:
    """Single user-visible notification"""
    message: str
    toast_type: ToastType
    title: str
    created_at: datetime = field(default_factory=utc_now)


class ToastManager:
    """Collects notifications and fans them out to subscribers"""

    def __init__(self, maxsize: int = 50):
        self._toasts: deque[Toast] = deque(maxlen=maxsize)
        self._listeners: list[Callable[[Toast], None]] = []

    def subscribe(self, listener: Callable[[Toast], None]):
        self._listeners.append(listener)

    def unsubscribe(self, listener: Callable[[Toast], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def show(self, message: str, toast_type: ToastType = ToastType.INFO, title: str = "") -> Toast:
        toast = Toast(message, toast_type, title or DEFAULT_TITLES[toast_type])
        self._toasts.append(toast)
        logger.log(_LOG_LEVELS[toast_type], f"[{toast.title}] {message}")
        for listener in list(self._listeners):
            try:
                listener(toast)
            except Exception as e:
                logger.error(f"Toast listener failed: {e}", exc_info=True)
        return toast

    def info(self, message: str, title: str = "") -> Toast:
        return self.show(message, ToastType.INFO, title)

    def success(self, message: str, title: str = "") -> Toast:
        return self.show(message, ToastType.SUCCESS, title)

    def warning(self, message: str, title: str = "") -> Toast:
        return self.show(message, ToastType.WARNING, title)

    def error(self, message: str, title: str = "") -> Toast:
        return self.show(message, ToastType.ERROR, title)

    def history(self) -> list[Toast]:
        """Notifications, oldest first"""
        return list(self._toasts)

    def last(self) -> Optional[Toast]:
        return self._toasts[-1] if self._toasts else None

    def clear(self):
        self._toasts.clear()
