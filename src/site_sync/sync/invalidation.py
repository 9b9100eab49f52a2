"""Aggregate fingerprint and the invalidate-everything decision."""

import hashlib
from typing import Mapping, Optional

from loguru import logger

from site_sync.models import RemoteObjectState
from site_sync.sync.utils import InvalidationDecision


class InvalidationTrigger:
    """
    Compares the tree-wide fingerprint of what is live with the last run's.

    The fingerprint covers the whole tree, so the decision is all-or-nothing:
    any change asks the cache to drop every path.
    """

    @staticmethod
    def aggregate(final_state: Mapping[str, RemoteObjectState]) -> str:
        """MD5 over "<path>\\0<digest>\\n" lines in lexicographic path order."""
        md5 = hashlib.md5()
        for relative_path in sorted(final_state):
            md5.update(relative_path.encode("utf-8"))
            md5.update(b"\0")
            md5.update(final_state[relative_path].digest.encode("ascii"))
            md5.update(b"\n")
        return md5.hexdigest()

    def check_and_signal(
        self,
        final_state: Mapping[str, RemoteObjectState],
        previous_aggregate: Optional[str],
    ) -> InvalidationDecision:
        new_aggregate = self.aggregate(final_state)
        changed = new_aggregate != previous_aggregate
        if changed:
            logger.info(
                f"Aggregate fingerprint changed "
                f"({(previous_aggregate or 'none')[:8]} -> {new_aggregate[:8]}), invalidation needed"
            )
        else:
            logger.debug(f"Aggregate fingerprint unchanged ({new_aggregate[:8]})")
        return InvalidationDecision(
            changed=changed,
            new_aggregate=new_aggregate,
            previous_aggregate=previous_aggregate,
        )
