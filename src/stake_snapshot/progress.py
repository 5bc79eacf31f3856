"""Single-line console progress bar with rate and ETA."""
import sys
import time
from typing import Optional, TextIO

BAR_WIDTH = 30


def _fmt_hms(seconds: float) -> str:
    s = int(max(0, seconds))
    h, rem = divmod(s, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h:d}h{m:02d}m{s:02d}s"
    if m:
        return f"{m:d}m{s:02d}s"
    return f"{s:d}s"


class ProgressBar:
    """
    Callable as a RetryCoordinator progress callback: bar(current, total).
    Only redraws when at least `min_interval` seconds have elapsed, except
    for the final update.
    """

    def __init__(self, prefix: str = "probe", *, stream: Optional[TextIO] = None, min_interval: float = 0.1) -> None:
        self.prefix = prefix
        self.stream = stream or sys.stdout
        self.min_interval = min_interval
        self._start = time.time()
        self._last_render = 0.0
        self._drawn = False

    def render_line(self, current: int, total: int, now: float) -> str:
        current = max(0, min(current, total))
        elapsed = max(1e-9, now - self._start)
        rate = current / elapsed
        remain = max(0.0, (total - current) / rate) if rate > 0 else 0.0

        pct = (current / total * 100.0) if total > 0 else 0.0
        filled = int(round(BAR_WIDTH * current / total)) if total > 0 else 0
        bar = "█" * filled + "·" * (BAR_WIDTH - filled)

        return (
            f"{self.prefix:>6} |[{bar}] {pct:6.2f}% "
            f"{current:>7d}/{total:<7d} | {rate:6.2f}/s | ETA {_fmt_hms(remain)}"
        )

    def __call__(self, current: int, total: int) -> None:
        now = time.time()
        if now - self._last_render < self.min_interval and current < total:
            return
        self._last_render = now
        self.stream.write("\r" + self.render_line(current, total, now))
        self.stream.flush()
        self._drawn = True

    def finish(self) -> None:
        if self._drawn:
            self.stream.write("\n")
            self.stream.flush()
