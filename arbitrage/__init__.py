"""Product snapshot aggregation and resale profitability core"""

__version__ = "0.3.0"
