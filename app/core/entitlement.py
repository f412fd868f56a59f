import threading
import time
from typing import Optional

from app.observability.logging import log


class Entitlement:
    """
    Process-wide premium flag.

    Starts as not premium and only ever moves to premium. grant() is the
    single mutator and is idempotent: concurrent or repeated grants leave
    the state as the first one set it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._premium = False
        self._plan_id: Optional[str] = None
        self._granted_at: Optional[int] = None

    @property
    def is_premium(self) -> bool:
        return self._premium

    @property
    def plan_id(self) -> Optional[str]:
        return self._plan_id

    @property
    def granted_at(self) -> Optional[int]:
        return self._granted_at

    def grant(self, plan_id: Optional[str] = None) -> bool:
        """Mark premium. Returns True only for the call that changed the state."""
        with self._lock:
            if self._premium:
                return False
            self._premium = True
            self._plan_id = plan_id
            self._granted_at = int(time.time())
        log(event="entitlement_granted", planId=plan_id)
        return True

    def reset(self) -> None:
        # New session; also used by tests
        with self._lock:
            self._premium = False
            self._plan_id = None
            self._granted_at = None


entitlement = Entitlement()
