"""
Base connector class for network data sources
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List
from datetime import datetime

from arbitrage.utils.logger import get_logger


class BaseConnector(ABC):
    """Base class for network data sources used by the core"""

    def __init__(self, name: str, logger=None):
        self.name = name
        self.last_fetch = None
        self.fetch_count = 0
        self.error_count = 0
        self.block_count = 0
        self.log = get_logger(name, logger)

    @abstractmethod
    async def fetch_offers(self, item_id: str) -> List[Dict[str, Any]]:
        """Fetch raw offer rows for one item"""
        pass

    def _record_success(self):
        self.last_fetch = datetime.utcnow()
        self.fetch_count += 1

    def _record_error(self, blocked: bool = False):
        self.error_count += 1
        if blocked:
            self.block_count += 1

    def get_status(self) -> Dict[str, Any]:
        """Get connector status"""
        attempts = self.fetch_count + self.error_count
        return {
            "name": self.name,
            "last_fetch": self.last_fetch,
            "fetch_count": self.fetch_count,
            "error_count": self.error_count,
            "block_count": self.block_count,
            "error_rate": self.error_count / max(attempts, 1),
        }
