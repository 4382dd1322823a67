"""
Throttled fan-out of independent upstream requests.
"""

import time
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BatchScheduler:
    """Runs tasks in fixed-size concurrent groups with a delay between groups."""

    def __init__(
        self,
        batch_size: int = 3,
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initializes the BatchScheduler.

        Args:
            batch_size (int): Default number of tasks per group.
            delay (float): Default pause between groups, in seconds.
            sleep (Callable[[float], None]): Sleep function used between groups.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        self.batch_size = batch_size
        self.delay = delay
        self._sleep = sleep

    def run_batched(
        self,
        tasks: Sequence[Callable[[], T]],
        batch_size: int = None,
        delay: float = None,
    ) -> List[T]:
        """
        Runs tasks group by group and returns their results in input order.

        Group N+1 starts only after every task of group N has finished and the
        delay has elapsed. No delay follows the last group. If a task raises, the
        rest of its group still runs to completion, then the first exception (in
        input order) propagates and later groups are not started.

        Args:
            tasks (Sequence[Callable[[], T]]): Zero-argument callables.
            batch_size (int): Overrides the default group size.
            delay (float): Overrides the default inter-group delay.

        Returns:
            List[T]: One result per task, in the order the tasks were given.
        """
        batch_size = self.batch_size if batch_size is None else batch_size
        delay = self.delay if delay is None else delay
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        tasks = list(tasks)
        results: List[T] = []
        total_groups = (len(tasks) + batch_size - 1) // batch_size

        for group_index, start in enumerate(range(0, len(tasks), batch_size)):
            group = tasks[start : start + batch_size]
            logger.debug(
                f"Running batch {group_index + 1}/{total_groups} ({len(group)} tasks)"
            )

            with ThreadPoolExecutor(max_workers=len(group)) as executor:
                futures = [executor.submit(task) for task in group]
                # Collecting by position keeps input order regardless of completion order
                results.extend(future.result() for future in futures)

            if start + batch_size < len(tasks) and delay > 0:
                self._sleep(delay)

        return results
