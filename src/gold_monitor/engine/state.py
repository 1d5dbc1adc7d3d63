from __future__ import annotations

import threading
from typing import Any

from gold_monitor.config.monitor import ConfigForm, MonitorConfig, parse_form
from gold_monitor.engine.failures import FailureTracker
from gold_monitor.types import MonitorStatus


class MonitorState:
    """Run flag and failure window, shared by the monitor task and command handlers.

    The lock is held only for the mutation itself.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status: MonitorStatus = "IDLE"
        self._failures = FailureTracker()

    @property
    def status(self) -> MonitorStatus:
        with self._lock:
            return self._status

    @property
    def running(self) -> bool:
        with self._lock:
            return self._status == "RUNNING"

    def set_running(self) -> bool:
        with self._lock:
            if self._status == "RUNNING":
                return False
            self._status = "RUNNING"
            return True

    def set_paused(self) -> bool:
        with self._lock:
            if self._status != "RUNNING":
                return False
            self._status = "PAUSED"
            return True

    def record_success(self) -> None:
        with self._lock:
            self._failures.record_success()

    def record_failure(self) -> bool:
        """Count a failed fetch; returns True when this failure auto-stopped the monitor."""
        with self._lock:
            self._failures.record_failure()
            if not self._failures.should_auto_stop():
                return False
            self._failures.clear()
            if self._status == "RUNNING":
                self._status = "PAUSED"
            return True

    def failure_flags(self) -> list[int]:
        with self._lock:
            return self._failures.flags()


class ConfigSource:
    """Live operator form; the monitor takes a validated snapshot every cycle."""

    def __init__(self, form: ConfigForm | None = None) -> None:
        self._lock = threading.Lock()
        self._form = form if form is not None else ConfigForm()

    def form(self) -> ConfigForm:
        with self._lock:
            return self._form

    def update(self, **fields: Any) -> ConfigForm:
        with self._lock:
            self._form = self._form.model_copy(update=fields)
            return self._form

    def current_config(self) -> MonitorConfig:
        return parse_form(self.form())
