"""
Debounce primitive.

Delays propagation of a rapidly-changing value until it has been stable for a
quiet period. Every new input cancels the pending emission and schedules a new
one; closing the debouncer cancels anything pending, so nothing fires after
teardown.
"""

import asyncio  # timers run as tasks on the running loop
from typing import Any, Callable, Generic, Optional, TypeVar

from loguru import logger  # console logging

T = TypeVar('T')


class Debouncer(Generic[T]):
	"""
	Holds a derived value that only follows its input after `delay_ms` of quiet.

	The value starts equal to `initial`. A delay of 0 still emits on the next
	loop iteration, never synchronously inside `set()`.
	"""

	def __init__(
		self,
		delay_ms: float,
		callback: Optional[Callable[[T], Any]] = None,
		initial: Optional[T] = None,
	):
		if delay_ms < 0:
			raise ValueError(f"delay_ms must be >= 0, got {delay_ms}")
		self.delay_ms = delay_ms  # default quiet period
		self.callback = callback  # called with the emitted value
		self.value: Optional[T] = initial  # last emitted value
		self._task: Optional[asyncio.Task] = None  # pending emission
		self._closed = False  # set by close()

	@property
	def pending(self) -> bool:
		"""True while an emission is scheduled but has not fired yet."""
		return self._task is not None and not self._task.done()

	@property
	def closed(self) -> bool:
		return self._closed

	def set(self, value: T, delay_ms: Optional[float] = None) -> None:
		"""
		Feed a new input value, re-arming the timer.
		Must be called from a running event loop.
		"""
		if self._closed:
			logger.debug("[Debounce] set() after close ignored")
			return
		delay = self.delay_ms if delay_ms is None else delay_ms
		if delay < 0:
			raise ValueError(f"delay_ms must be >= 0, got {delay}")

		self.cancel()  # drop the previous schedule
		self._task = asyncio.get_running_loop().create_task(self._emit_later(value, delay))
		logger.debug(f"[Debounce] Armed for {delay}ms")

	async def _emit_later(self, value: T, delay_ms: float) -> None:
		await asyncio.sleep(delay_ms / 1000.0)
		if self._closed:
			return
		self.value = value
		logger.debug("[Debounce] Quiet period elapsed; emitting")
		if self.callback is not None:
			self.callback(value)

	def cancel(self) -> None:
		"""Cancel a pending emission, if any. The current value is kept."""
		if self._task is not None and not self._task.done():
			self._task.cancel()
		self._task = None

	def close(self) -> None:
		"""Teardown: cancel the pending emission and refuse further input."""
		self.cancel()
		self._closed = True

	async def wait(self) -> None:
		"""Wait until no emission is pending (re-arms while waiting are followed)."""
		while self._task is not None and not self._task.done():
			# asyncio.wait does not raise when the awaited task gets cancelled
			await asyncio.wait({self._task})
