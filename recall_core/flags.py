"""
Feature gate - cached boolean flag decisions.

The gate does not know how flags are evaluated (overrides, rollout
percentages, storage). It wraps a caller-supplied evaluator and caches its
answers in an injected TtlCache.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from recall_core.cache import TtlCache

logger = logging.getLogger(__name__)

ADAPTIVE_RETENTION_POLICY = "adaptive_retention_policy"
DAY1_SHORT_LOOP_POLICY = "day1_short_loop_policy"
FEATURE_FLAGS = (ADAPTIVE_RETENTION_POLICY, DAY1_SHORT_LOOP_POLICY)

# (flag_key, user_id) -> True/False, or None when the flag is not defined
FlagEvaluator = Callable[[str, str], Optional[bool]]


class FeatureGate:
    """
    Per-user flag decisions with caching and a fallback.

    Args:
        evaluator: Resolves a flag for a user
        cache: Cache for decisions, keyed by (flag, user, fallback)
    """

    def __init__(self, evaluator: FlagEvaluator, cache: TtlCache[bool]):
        self._evaluator = evaluator
        self._cache = cache

    def is_enabled(self, flag_key: str, user_id: str, fallback: bool = False) -> bool:
        """
        Resolve a flag for a user.

        Undefined flags resolve to the fallback. If the evaluator raises, the
        failure is logged and the fallback is returned (and cached).
        """
        key = (flag_key, user_id, fallback)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            value = self._evaluator(flag_key, user_id)
        except Exception as e:
            logger.warning(
                "Feature flag evaluation failed; using fallback (flag=%s, user=%s, fallback=%s): %s",
                flag_key, user_id, fallback, e
            )
            value = None

        decision = fallback if value is None else bool(value)
        self._cache.set(key, decision)
        return decision
