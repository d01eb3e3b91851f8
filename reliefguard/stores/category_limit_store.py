"""Category limit store interface and in-memory implementation"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from reliefguard.constants import AidCategory
from reliefguard.models.category import CategoryLimit


class CategoryLimitStore(ABC):
    """Per-category limit configuration, maintained by administrators"""

    @abstractmethod
    def get_limit_for_category(self, category: AidCategory) -> Optional[CategoryLimit]:
        """Active limit for a category, or None"""

    @abstractmethod
    def set_limit(self, limit: CategoryLimit) -> None:
        """Create or replace a category limit"""

    @abstractmethod
    def get_active_limits(self) -> List[CategoryLimit]:
        """All active limits ordered by category"""

    def is_emergency_override_active(self, category: AidCategory, now: Optional[datetime] = None) -> bool:
        limit = self.get_limit_for_category(category)
        return limit is not None and limit.is_emergency_override_active(now)


class InMemoryCategoryLimitStore(CategoryLimitStore):
    """Limit store seeded from configuration"""

    def __init__(self, limits: Optional[Iterable[CategoryLimit]] = None):
        self._lock = threading.Lock()
        self._limits: Dict[AidCategory, CategoryLimit] = {}
        for limit in limits or []:
            self.set_limit(limit)

    def get_limit_for_category(self, category: AidCategory) -> Optional[CategoryLimit]:
        with self._lock:
            limit = self._limits.get(category)
        if limit is None or not limit.is_active:
            return None
        return limit

    def set_limit(self, limit: CategoryLimit) -> None:
        with self._lock:
            self._limits[limit.category] = limit

    def get_active_limits(self) -> List[CategoryLimit]:
        with self._lock:
            limits = [limit for limit in self._limits.values() if limit.is_active]
        return sorted(limits, key=lambda limit: limit.category.value)
