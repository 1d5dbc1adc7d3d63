__all__ = [
    "ConfigError",
    "ConfigForm",
    "MonitorConfig",
    "MonitorFile",
    "load_monitor_file",
    "parse_form",
]

from gold_monitor.config.monitor import (
    ConfigError,
    ConfigForm,
    MonitorConfig,
    MonitorFile,
    load_monitor_file,
    parse_form,
)
