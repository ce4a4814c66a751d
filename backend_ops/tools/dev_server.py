"""
Development startup helper.

Checks that dependencies are installed, prints how to start the dev servers,
and with --auto supervises two children: backend first, frontend after a
delay. SIGINT/SIGTERM stops both (terminate, then kill after a grace period).
If one child exits on its own the other is stopped too.
"""
import signal
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from backend_ops.monitoring.logger import get_logger

logger = get_logger(__name__)

POLL_INTERVAL = 0.2


def dependencies_installed(root: Path, marker: str) -> bool:
    return (root / marker).exists()


def usage_lines(backend_cmd: Sequence[str], frontend_cmd: Sequence[str]) -> List[str]:
    return [
        "Start the development servers in two terminals:",
        f"  1. Backend:  {' '.join(backend_cmd)}",
        f"  2. Frontend: {' '.join(frontend_cmd)}",
        "",
        "Or let this helper start and supervise both:",
        "  backend-ops dev --auto",
    ]


class DevSupervisor:
    """Two-child process supervision."""

    def __init__(
        self,
        backend_cmd: Sequence[str],
        frontend_cmd: Sequence[str],
        *,
        startup_delay: float = 3.0,
        shutdown_timeout: float = 5.0,
        cwd: Optional[Path] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.commands = [("backend", list(backend_cmd)), ("frontend", list(frontend_cmd))]
        self.startup_delay = startup_delay
        self.shutdown_timeout = shutdown_timeout
        self.cwd = cwd
        self._popen = popen
        self._clock = clock
        self._sleep = sleep
        self.children: List[Tuple[str, subprocess.Popen]] = []
        self.stop_requested = False

    def request_stop(self, signum=None, frame=None) -> None:
        if not self.stop_requested:
            logger.info("DEV_STOP_REQUESTED", signal=signal.Signals(signum).name if signum else None)
        self.stop_requested = True

    def _spawn(self, name: str, cmd: List[str]) -> None:
        # stdin/stdout/stderr are inherited
        proc = self._popen(cmd, cwd=str(self.cwd) if self.cwd else None)
        self.children.append((name, proc))
        logger.info("DEV_PROCESS_STARTED", name=name, pid=proc.pid, command=" ".join(cmd))

    def _wait_interruptible(self, seconds: float) -> None:
        deadline = self._clock() + seconds
        while not self.stop_requested and self._clock() < deadline:
            if self._first_exited() is not None:
                return
            self._sleep(min(POLL_INTERVAL, max(deadline - self._clock(), 0)))

    def _first_exited(self) -> Optional[Tuple[str, int]]:
        for name, proc in self.children:
            code = proc.poll()
            if code is not None:
                return name, code
        return None

    def start(self) -> None:
        backend, frontend = self.commands
        self._spawn(*backend)
        if self.startup_delay > 0:
            logger.info("DEV_WAITING_FOR_BACKEND", seconds=self.startup_delay)
            self._wait_interruptible(self.startup_delay)
        if not self.stop_requested and self._first_exited() is None:
            self._spawn(*frontend)

    def wait(self) -> int:
        """Block until a stop is requested or a child exits, then shut everything down."""
        exit_code = 0
        while not self.stop_requested:
            exited = self._first_exited()
            if exited is not None:
                name, code = exited
                logger.warning("DEV_PROCESS_EXITED", name=name, exit_code=code)
                # Negative return codes mean the child died from a signal
                exit_code = code if code >= 0 else 1
                break
            self._sleep(POLL_INTERVAL)
        self.shutdown()
        return exit_code

    def shutdown(self) -> None:
        running = [(name, proc) for name, proc in self.children if proc.poll() is None]
        for name, proc in running:
            logger.info("DEV_PROCESS_TERMINATING", name=name, pid=proc.pid)
            proc.terminate()

        deadline = self._clock() + self.shutdown_timeout
        for name, proc in running:
            remaining = max(deadline - self._clock(), 0)
            try:
                proc.wait(timeout=remaining)
            except subprocess.TimeoutExpired:
                logger.warning("DEV_PROCESS_KILLED", name=name, pid=proc.pid, timeout=self.shutdown_timeout)
                proc.kill()
                proc.wait()

    def run(self) -> int:
        previous = {sig: signal.signal(sig, self.request_stop) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            try:
                self.start()
            except BaseException:
                self.shutdown()
                raise
            return self.wait()
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
