"""Run one task per host concurrently and collect every outcome."""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional, Sequence, Tuple

from sshrelease.models import HostResult

Task = Tuple[str, Callable[[], Any]]


def fan_out(tasks: Sequence[Task], max_workers: Optional[int] = None) -> List[HostResult]:
    """Run ``(label, callable)`` pairs in parallel and wait for all of them.

    Never short-circuits: a failing task is captured in its HostResult and the
    remaining tasks still run to completion. Results keep the input order.
    """
    if not tasks:
        return []

    def _call(label: str, task: Callable[[], Any]) -> HostResult:
        try:
            return HostResult(host=label, value=task())
        except Exception as exc:
            return HostResult(host=label, error=exc)

    workers = max_workers or len(tasks)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sshrelease") as executor:
        futures = [executor.submit(_call, label, task) for label, task in tasks]
        return [future.result() for future in futures]


def failed(results: Sequence[HostResult]) -> List[HostResult]:
    return [result for result in results if not result.ok]


def describe_failures(results: Sequence[HostResult]) -> str:
    return ", ".join(f"{result.host} ({result.error})" for result in failed(results))
