__all__ = ["JijinhaoQuoteClient", "QuoteSourceError", "extract_price"]

from gold_monitor.sources.jijinhao import JijinhaoQuoteClient, QuoteSourceError, extract_price
