from __future__ import annotations

import threading
from concurrent.futures import FIRST_COMPLETED, Executor, Future, wait
from typing import Any, Callable, Dict, Generic, Hashable, List, Optional, Sequence, TypeVar

K = TypeVar("K", bound=Hashable)
R = TypeVar("R")


def completed_future(value: R) -> "Future[R]":
    fut: Future[R] = Future()
    fut.set_result(value)
    return fut


class SingleFlight(Generic[K, R]):
    """
    In-flight request registry: at most one computation per key runs at a
    time and every concurrent caller for that key shares its Future.

    A key is forgotten as soon as its computation settles, so results must be
    memoized by the caller if later requests should not recompute.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._inflight: Dict[K, Future[R]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._inflight)

    def in_flight(self, key: K) -> bool:
        with self._lock:
            return key in self._inflight

    def _forget(self, key: K, fut: "Future[R]") -> None:
        with self._lock:
            if self._inflight.get(key) is fut:
                del self._inflight[key]

    def submit(self, key: K, executor: Executor, func: Callable[..., R], *args: Any) -> "Future[R]":
        """Run func on the executor unless a computation for key is already pending."""
        with self._lock:
            fut = self._inflight.get(key)
            if fut is not None:
                return fut
            fut = executor.submit(func, *args)
            self._inflight[key] = fut
        fut.add_done_callback(lambda done: self._forget(key, done))
        return fut

    def do(self, key: K, func: Callable[..., R], *args: Any) -> R:
        """
        Run func in the calling thread if no computation for key is pending;
        otherwise block until the pending one settles and share its outcome.
        """
        with self._lock:
            fut = self._inflight.get(key)
            leader = fut is None
            if fut is None:
                fut = Future()
                fut.set_running_or_notify_cancel()
                self._inflight[key] = fut
        if not leader:
            return fut.result()
        try:
            result = func(*args)
        except BaseException as e:
            self._forget(key, fut)
            fut.set_exception(e)
            raise
        self._forget(key, fut)
        fut.set_result(result)
        return result


def wait_ordered(
    futures: Sequence["Future[R]"],
    *,
    on_done: Optional[Callable[[int], None]] = None,
) -> List[R]:
    """
    Wait for every future and return their results in input order.

    on_done is called with the input index of each future as it settles
    (completion order). The first exception found, in input order, is raised
    once all futures have settled so no result is silently dropped.
    """
    # The same shared future may back several entries
    pending: Dict[Future[R], List[int]] = {}
    for index, fut in enumerate(futures):
        pending.setdefault(fut, []).append(index)
    while pending:
        done, _ = wait(list(pending.keys()), return_when=FIRST_COMPLETED)
        for fut in done:
            for index in pending.pop(fut):
                if on_done is not None:
                    on_done(index)
    errors = [fut.exception() for fut in futures if fut.exception() is not None]
    if errors:
        raise errors[0]  # type: ignore[misc]
    return [fut.result() for fut in futures]
