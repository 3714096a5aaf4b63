import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from utils.logger import get_logger


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry: at most ``max_attempts`` calls, ``delay_ms`` apart."""

    max_attempts: int = 2
    delay_ms: int = 2000

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must not be negative")

    @classmethod
    def from_settings(cls, settings: Optional[Dict[str, Any]]) -> "RetryPolicy":
        settings = settings or {}
        return cls(
            max_attempts=int(settings.get("max_attempts", cls.max_attempts)),
            delay_ms=int(settings.get("delay_ms", cls.delay_ms)),
        )

    def run(
        self,
        fn: Callable[[], Any],
        accept: Callable[[Any], bool],
        sleep: Optional[Callable[[int], None]] = None,
    ) -> Any:
        """Call ``fn`` until ``accept`` approves its result.

        Returns the last result even when it was never accepted, so the caller
        decides how to fail. ``sleep`` receives milliseconds.
        """
        sleep = sleep or (lambda ms: time.sleep(ms / 1000.0))
        result = None
        for attempt in range(1, self.max_attempts + 1):
            result = fn()
            if accept(result):
                return result
            if attempt < self.max_attempts:
                get_logger().debug(
                    f"Attempt {attempt}/{self.max_attempts} not accepted, retrying in {self.delay_ms} ms"
                )
                sleep(self.delay_ms)
        return result
