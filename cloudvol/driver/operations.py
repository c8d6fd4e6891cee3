"""
Bounded polling of asynchronous cloud operations.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from .exceptions import OperationTimeoutError, ProviderError

if TYPE_CHECKING:
    from .services import CloudDiskService

LOG = logging.getLogger(__name__)

OPERATION_DONE = "DONE"
OPERATION_WAIT_TIMEOUT = 5.0
OPERATION_POLL_INTERVAL = 0.1


@dataclass
class OperationHandle:
    """Reference to an asynchronous remote operation.

    Attributes:
        name: Operation name
        target_link: URI of the resource the operation acts on
        status: Last observed status (PENDING, RUNNING, DONE)
        errors: Errors reported by a finished operation
    """

    name: str
    target_link: str = ""
    status: str = "PENDING"
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def done(self) -> bool:
        return self.status == OPERATION_DONE


class OperationWaiter:
    """Polls an operation until it is done or a deadline passes.

    Fetch failures while polling are logged and polling continues; only the
    deadline ends an unfinished wait.
    """

    def __init__(
        self,
        service: "CloudDiskService",
        timeout: float = OPERATION_WAIT_TIMEOUT,
        interval: float = OPERATION_POLL_INTERVAL,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.service = service
        self.timeout = timeout
        self.interval = interval
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep

    def wait(self, handle: OperationHandle) -> OperationHandle:
        """Block until the operation reports DONE.

        Args:
            handle: Operation returned by a Cloud Disk Service call

        Returns:
            The finished operation

        Raises:
            OperationTimeoutError: Deadline elapsed before DONE
            ProviderError: Operation finished with errors
        """
        start = self._clock()
        while self._clock() - start < self.timeout:
            LOG.info("Waiting for operation %s on %s", handle.name, handle.target_link)
            try:
                current = self.service.get_operation(handle)
            except Exception as e:
                LOG.warning(
                    "Error while getting operation %s (target=%s): %s", handle.name, handle.target_link, e
                )
            else:
                LOG.info("Operation %s status: %s", current.name, current.status)
                if current.done:
                    if current.errors:
                        first = current.errors[0]
                        raise ProviderError(
                            f"operation {current.name} on {current.target_link} failed: "
                            f"{first.get('message', first.get('code', 'unknown error'))}"
                        )
                    return current
            self._sleep(self.interval)

        LOG.warning(
            "Timeout while waiting for operation %s on %s (timeout=%ss)",
            handle.name,
            handle.target_link,
            self.timeout,
        )
        raise OperationTimeoutError(
            f"timeout while waiting for operation {handle.name} on {handle.target_link} to complete"
        )
