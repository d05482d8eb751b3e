import logging
import threading
from threading import Lock

from src.components.mailing_list.models import RateLimitDecision
from src.core.ports.time import ClockPort

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class RateLimiter:
    """
    One signup request per source IP per window.

    Each IP maps to the epoch second before which further requests are
    throttled. Throttling is decided entirely by check_and_register();
    sweep() only drops stale records to bound memory.
    """

    def __init__(self, window_seconds: int = DEFAULT_WINDOW_SECONDS):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_seconds = window_seconds
        self._deadlines: dict[str, int] = {}
        self._lock = Lock()

    def check_and_register(self, ip: str, now: int) -> RateLimitDecision:
        """
        Check if request is allowed.
        If allowed, records a new deadline and returns allowed.
        If denied, returns the seconds left until the deadline.
        """
        with self._lock:
            deadline = self._deadlines.get(ip)
            if deadline is not None and deadline > now:
                return RateLimitDecision.throttle(deadline - now)

            self._deadlines[ip] = now + self.window_seconds
            return RateLimitDecision.allow()

    def sweep(self, now: int) -> int:
        """Remove every record whose deadline is <= now. Returns count removed."""
        with self._lock:
            expired = [ip for ip, deadline in self._deadlines.items() if deadline <= now]
            for ip in expired:
                del self._deadlines[ip]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._deadlines)


class RateLimitSweeper:
    """
    Background sweep of expired rate-limit records.

    Runs a daemon thread that sweeps at a fixed interval until stopped.
    """

    def __init__(
        self,
        limiter: RateLimiter,
        clock: ClockPort,
        interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        self._limiter = limiter
        self._clock = clock
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._running = False

    def start(self) -> None:
        """Start the background sweeper."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._sweep_loop, name="rate-limit-sweeper", daemon=True
        )
        self._thread.start()
        self._running = True
        logger.info("Rate limit sweeper started (interval: %.1fs)", self._interval)

    def stop(self) -> None:
        """Stop the sweeper and wait for the thread to exit."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("Rate limit sweeper stopped")

    def sweep_now(self) -> int:
        """Run one sweep immediately."""
        removed = self._limiter.sweep(self._clock.now_epoch())
        if removed > 0:
            logger.info("Cleaned up %d expired IP entries", removed)
        return removed

    @property
    def is_running(self) -> bool:
        return self._running

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval):
            try:
                self.sweep_now()
            except Exception:
                logger.exception("Error in rate limit sweep")
