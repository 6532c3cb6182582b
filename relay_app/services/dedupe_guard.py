"""First-seen-wins signal dedupe with a per-series cooldown.

Order of checks:
1. Claim the bucketed dedupe key (SET NX EX dedupe_ttl). Taken -> duplicate.
2. Claim the un-bucketed cooldown key (SET NX EX cooldown). Taken -> release
   the dedupe key claimed in step 1 and suppress. Skipped when cooldown is 0.

If Redis cannot answer, the signal is allowed (fail-open) and a warning is
logged; the unique dedupe key on the signals table still stops a second row.

A caller that fails after the claim calls ``release`` so the next tick can
retry the same signal.
"""

import logging

from relay_app.storage import cache
from relay_core.dedupe import build_cooldown_key, build_dedupe_key
from relay_core.models import Signal

logger = logging.getLogger(__name__)

DEDUPE_KEY_PREFIX = "signal:"


class SignalDedupeGuard:

    def __init__(self, dedupe_ttl_seconds: int = 7200, cooldown_seconds: int = 300):
        self.dedupe_ttl_seconds = dedupe_ttl_seconds
        self.cooldown_seconds = cooldown_seconds

    async def is_allowed(self, signal: Signal) -> bool:
        dedupe_key = DEDUPE_KEY_PREFIX + build_dedupe_key(signal)

        claimed = await cache.set_nx(dedupe_key, b"1", self.dedupe_ttl_seconds)
        if claimed is None:
            logger.warning(f"Dedupe store unavailable, allowing signal {dedupe_key}")
            return True
        if not claimed:
            logger.debug(f"Duplicate signal suppressed: {dedupe_key}")
            return False

        if self.cooldown_seconds <= 0:
            return True

        cooldown_key = build_cooldown_key(signal)
        cooled = await cache.set_nx(cooldown_key, b"1", self.cooldown_seconds)
        if cooled is None:
            logger.warning(f"Cooldown store unavailable, allowing signal {dedupe_key}")
            return True
        if not cooled:
            await cache.delete(dedupe_key)
            logger.debug(f"Signal in cooldown, suppressed: {cooldown_key}")
            return False

        return True

    async def release(self, signal: Signal) -> None:
        """Drop the dedupe and cooldown claims so a retry is not suppressed."""
        await cache.delete(DEDUPE_KEY_PREFIX + build_dedupe_key(signal))
        if self.cooldown_seconds > 0:
            await cache.delete(build_cooldown_key(signal))
