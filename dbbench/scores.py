"""
Score aggregation: per-category throughput samples and their geometric mean.
"""

from __future__ import annotations

import math
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Union

from dbbench.domain.models import Category
from dbbench.errors import ScoreError

SUMMARY_CATEGORIES = (Category.SELECT, Category.INSERT, Category.UPDATE)


def geomean(samples: Sequence[float]) -> float:
    """
    Geometric mean of strictly positive samples.

    Computed in log space with `math.fsum`, which is exactly rounded, so the
    result does not depend on sample order and large products cannot overflow.
    """
    if not samples:
        raise ScoreError("geometric mean of an empty sample set")
    for value in samples:
        if not value > 0:
            raise ScoreError(f"throughput samples must be positive, got {value!r}")
    return math.exp(math.fsum(math.log(v) for v in samples) / len(samples))


class ScoreBoard:
    """Category -> ordered throughput samples, safe for concurrent appends."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: Dict[Category, List[float]] = {}

    def record(self, category: Union[Category, str], sample: float) -> None:
        category = Category(category)
        with self._lock:
            self._samples.setdefault(category, []).append(float(sample))

    def samples(self, category: Union[Category, str]) -> List[float]:
        with self._lock:
            return list(self._samples.get(Category(category), ()))

    def geomean(self, category: Union[Category, str]) -> float:
        return geomean(self.samples(category))

    def summary(
        self, categories: Iterable[Category] = SUMMARY_CATEGORIES
    ) -> Dict[str, Optional[float]]:
        result: Dict[str, Optional[float]] = {}
        for category in categories:
            samples = self.samples(category)
            result[category.value] = geomean(samples) if samples else None
        return result

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()


__all__ = ["SUMMARY_CATEGORIES", "ScoreBoard", "geomean"]
