__all__ = ["HistoryStore", "HistoryStoreError", "PriceSample", "SampleHistory"]

from gold_monitor.storage.history import HistoryStore, HistoryStoreError, SampleHistory
from gold_monitor.storage.models import PriceSample
