__all__ = ["create_app"]

from gold_monitor.web.app import create_app
