__all__ = [
    "AlertDispatcher",
    "FailureTracker",
    "MonitorLoop",
    "MonitorRuntime",
    "MonitorState",
    "build_runtime",
]

from gold_monitor.engine.alerts import AlertDispatcher
from gold_monitor.engine.failures import FailureTracker
from gold_monitor.engine.monitor import MonitorLoop
from gold_monitor.engine.runtime import MonitorRuntime, build_runtime
from gold_monitor.engine.state import MonitorState
