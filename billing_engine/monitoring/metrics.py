import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

class NumberingMetrics:
    """
    Process-local counts of allocated document numbers.
    Emergency allocations mean the counter store was unreachable.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self._allocated: Counter = Counter()
        self._emergency: Counter = Counter()
        self.last_emergency_at: Optional[datetime] = None

    def record_allocated(self, document_type: str):
        self._allocated[document_type] += 1

    def record_emergency(self, document_type: str, now: Optional[datetime] = None):
        self._emergency[document_type] += 1
        self.last_emergency_at = now or datetime.utcnow()
        logger.warning(
            f"Emergency numbering in use for {document_type} "
            f"({self._emergency[document_type]} since start)"
        )

    def emergency_count(self, document_type: Optional[str] = None) -> int:
        if document_type is None:
            return sum(self._emergency.values())
        return self._emergency[document_type]

    def snapshot(self) -> Dict[str, Any]:
        total_allocated = sum(self._allocated.values())
        total_emergency = sum(self._emergency.values())
        total = total_allocated + total_emergency
        return {
            "allocated": dict(self._allocated),
            "emergency": dict(self._emergency),
            "emergency_rate": round(total_emergency / total * 100, 2) if total else 0.0,
            "last_emergency_at": self.last_emergency_at,
            "degraded": total_emergency > 0,
        }

numbering_metrics = NumberingMetrics()
