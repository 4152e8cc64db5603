"""
Scheduler for periodic refresh tasks.

Each task runs on its own daemon thread at a fixed period. Invocations of the
same task never overlap; different tasks run fully concurrently. A failing
invocation is logged and the task waits for its next tick.

Example:
    scheduler = Scheduler()
    scheduler.add_task("prices", 2.0, refresh_prices)
    scheduler.start()
    ...
    scheduler.stop()
"""
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

logger = logger.bind(context="scheduler")


class PeriodicTask:
    """
    A job run every `interval` seconds on a dedicated thread.

    The first tick fires immediately. The cancellation event is checked at
    the top of every tick; an overrunning tick makes the next one start
    right away instead of queueing missed ticks.
    """

    def __init__(self, name: str, interval: float, job: Callable[[], Any]):
        """
        Initialize periodic task.

        Args:
            name: Task name (thread name and log context)
            interval: Period in seconds
            job: Callable run on each tick
        """
        if interval <= 0:
            raise ValueError(f"interval must be positive: {interval}")

        self.name = name
        self.interval = interval
        self.job = job

        self.ticks = 0
        self.errors = 0
        self.last_result: Any = None

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def tick(self) -> Any:
        """
        Run the job once.

        Unexpected exceptions are logged with traceback and never raised.
        """
        self.ticks += 1
        try:
            result = self.job()
        except Exception as e:
            self.errors += 1
            logger.exception(f"Task {self.name} raised unexpectedly: {e}")
            result = None
        self.last_result = result
        return result

    def run(self, max_ticks: Optional[int] = None) -> None:
        """
        Tick until stopped.

        Args:
            max_ticks: Stop after this many ticks (None = forever)
        """
        count = 0
        next_run = time.monotonic()

        while not self._stop.is_set():
            self.tick()
            count += 1
            if max_ticks is not None and count >= max_ticks:
                break

            next_run += self.interval
            now = time.monotonic()
            if next_run < now:
                next_run = now
            if self._stop.wait(next_run - now):
                break

    def start(self) -> None:
        """Start ticking on a daemon thread."""
        if self.is_running:
            logger.warning(f"Task {self.name} already running")
            return

        self._stop.clear()
        self._thread = threading.Thread(target=self.run, name=f"refresh-{self.name}", daemon=True)
        self._thread.start()
        logger.info(f"Task {self.name} started (interval: {self.interval:g}s)")

    def stop(self) -> None:
        """Signal the task to stop; an in-flight tick is allowed to finish."""
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the task thread to exit.

        Returns:
            True if the thread has exited (or was never started)
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()


class Scheduler:
    """
    Owns the periodic tasks and their lifetimes.

    Tasks are independent: the scheduler holds no lock shared between them.
    """

    def __init__(self):
        self._tasks: Dict[str, PeriodicTask] = {}

    @property
    def tasks(self) -> List[PeriodicTask]:
        return list(self._tasks.values())

    def get(self, name: str) -> PeriodicTask:
        return self._tasks[name]

    def add_task(self, name: str, interval: float, job: Callable[[], Any]) -> PeriodicTask:
        """
        Register a task.

        Raises:
            ValueError: If a task with this name exists or interval is not positive
        """
        if name in self._tasks:
            raise ValueError(f"Duplicate task name: {name}")

        task = PeriodicTask(name, interval, job)
        self._tasks[name] = task
        return task

    def start(self) -> None:
        """Start every registered task."""
        for task in self._tasks.values():
            task.start()
        logger.info(f"Scheduler started with {len(self._tasks)} tasks")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop every task and wait up to `timeout` seconds for each thread.

        Threads still blocked in a network call are left behind; they are
        daemons and die with the process.
        """
        logger.info("Scheduler stopping...")
        for task in self._tasks.values():
            task.stop()

        deadline = time.monotonic() + timeout
        for task in self._tasks.values():
            remaining = max(0.0, deadline - time.monotonic())
            if not task.join(remaining):
                logger.warning(f"Task {task.name} did not stop within {timeout:g}s")

        logger.info("Scheduler stopped")

    def run_ticks(self, count: int = 1) -> Dict[str, List[Any]]:
        """
        Run each task `count` times on the calling thread, in registration order.

        Returns:
            Results per task name
        """
        results: Dict[str, List[Any]] = {}
        for task in self._tasks.values():
            results[task.name] = [task.tick() for _ in range(count)]
        return results

    def wait(self) -> None:
        """Block until every task thread has exited."""
        for task in self._tasks.values():
            task.join()

    def get_summary(self) -> Dict[str, Dict[str, Any]]:
        """Get per-task counters."""
        return {
            task.name: {
                "running": task.is_running,
                "interval": task.interval,
                "ticks": task.ticks,
                "errors": task.errors,
            }
            for task in self._tasks.values()
        }
