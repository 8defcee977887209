"""A tiny abstraction over ThreadPoolExecutor inspired by ``p-map``.

- ``p_map()``: map an iterable through a mapper with a ``concurrency`` cap,
  preserving input order.
- ``p_map_settled()``: same, but never raises for mapper errors; every input
  yields a :class:`Settled` carrying either the value or the exception (like
  ``Promise.allSettled``).
- ``resolve_concurrency()``: read the commit fan-out from the environment.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Generic, TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")

DEFAULT_CONCURRENCY = 8
MAX_CONCURRENCY = 32


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
    stop_on_error: bool = True,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with a bounded concurrency limit.

    - The returned list preserves the input order.
    - When ``stop_on_error`` is True (default), the first mapper error is
      propagated immediately and any not-yet-started work is cancelled.
    - When ``stop_on_error`` is False, the function waits for all mappers to
      finish and then raises an ``ExceptionGroup`` if any failed.
    """

    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    it = enumerate(iterable)

    results: dict[int, OutT] = {}
    errors: list[Exception] = []
    submitted = 0
    future_to_idx: dict[Future, int] = {}

    def _submit(pool: ThreadPoolExecutor) -> Future | None:
        nonlocal submitted
        try:
            idx, item = next(it)
        except StopIteration:
            return None
        fut = pool.submit(mapper, item)
        future_to_idx[fut] = idx
        submitted += 1
        return fut

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        # Prime the window
        active: set[Future] = set()
        for _ in range(concurrency):
            fut = _submit(pool)
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)

            for fut in done:
                idx = future_to_idx.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception as e:  # noqa: BLE001
                    if stop_on_error:
                        try:
                            pool.shutdown(wait=False, cancel_futures=True)
                        finally:
                            raise
                    errors.append(e)

            # Top up: one new task per completion.
            for _ in range(len(done)):
                fut = _submit(pool)
                if fut is None:
                    break
                active.add(fut)

    if errors:
        raise ExceptionGroup("p_map: one or more mapper calls failed", errors)

    return [results[i] for i in range(submitted)]


@dataclass(frozen=True, slots=True)
class Settled(Generic[OutT]):
    """Outcome of one mapper call: ``value`` on success, ``error`` otherwise."""

    value: OutT | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def p_map_settled(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[Settled[OutT]]:
    """Run every mapper call to completion and report each outcome in order."""

    def _settle(item: InT) -> Settled[OutT]:
        try:
            return Settled(value=mapper(item))
        except Exception as e:  # noqa: BLE001 - reported to the caller
            return Settled(error=e)

    return p_map(iterable, _settle, concurrency=concurrency)


def resolve_concurrency(
    value: int | None = None, environ: Mapping[str, str] | None = None
) -> int:
    """Pick the worker count: explicit value, else ``SI_COMMIT_CONCURRENCY``.

    Explicit values outside ``1..32`` raise ``ValueError``. Env values are
    clamped to that range; a non-integer one falls back to the default.
    """

    if value is not None:
        if isinstance(value, bool) or not isinstance(value, int) or not (
            1 <= value <= MAX_CONCURRENCY
        ):
            raise ValueError(f"concurrency must be an integer in 1..{MAX_CONCURRENCY}")
        return value

    env = os.environ if environ is None else environ
    raw = (env.get("SI_COMMIT_CONCURRENCY") or "").strip()
    if not raw:
        return DEFAULT_CONCURRENCY
    try:
        n = int(raw)
    except ValueError:
        return DEFAULT_CONCURRENCY
    return max(1, min(MAX_CONCURRENCY, n))


__all__ = [
    "DEFAULT_CONCURRENCY",
    "MAX_CONCURRENCY",
    "Settled",
    "p_map",
    "p_map_settled",
    "resolve_concurrency",
]
