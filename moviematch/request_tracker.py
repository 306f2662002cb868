"""
Request lifecycle tracker.

Issues one request per call, tags it with a monotonically increasing sequence
number and lets only the most recently issued request's outcome update the
visible state (loading / error / result). Older requests are superseded
logically: they keep running, but their settlement is discarded.
"""

from typing import Awaitable, Callable, Optional  # type annotations

from loguru import logger  # console logging

from .errors import CatalogError  # errors reported into state
from .models import QueryFingerprint, RequestTicket, ResultPage  # ticket and payload types

FetchPage = Callable[[], Awaitable[ResultPage]]
CommitHook = Callable[[RequestTicket, ResultPage], None]


class RequestTracker:
	"""
	Owns the loading / error / result triple for one logical view.

	Invariant: a ticket's settlement mutates state only when its sequence equals
	the latest issued sequence at settlement time, and the tracker is open.
	"""

	def __init__(self, on_change: Optional[Callable[[], None]] = None):
		self.on_change = on_change  # called after every visible transition
		self.loading: bool = False  # live request in flight
		self.error: Optional[str] = None  # message of the last live failure
		self.result: Optional[ResultPage] = None  # last committed page
		self.current_ticket: Optional[RequestTicket] = None  # most recently issued ticket
		self._sequence = 0  # latest issued sequence number
		self._closed = False

	@property
	def latest_sequence(self) -> int:
		return self._sequence

	@property
	def closed(self) -> bool:
		return self._closed

	def is_live(self, ticket: RequestTicket) -> bool:
		"""True if this ticket is still allowed to touch visible state."""
		return not self._closed and ticket.sequence == self._sequence

	def _notify(self) -> None:
		if self.on_change is not None:
			self.on_change()

	async def issue(
		self,
		fetch_fn: FetchPage,
		fingerprint: Optional[QueryFingerprint] = None,
		on_commit: Optional[CommitHook] = None,
	) -> bool:
		"""
		Run `fetch_fn` as the new live request.
		Returns True if its outcome was applied to state, False if it was superseded.
		"""
		if self._closed:
			raise RuntimeError("RequestTracker is closed")

		self._sequence += 1
		ticket = RequestTicket(sequence=self._sequence, fingerprint=fingerprint)
		self.current_ticket = ticket
		self.loading = True
		logger.debug(f"[Tracker] Issued ticket #{ticket.sequence}")
		self._notify()

		try:
			page = await fetch_fn()
		except CatalogError as e:
			return self._settle_failure(ticket, str(e))
		except Exception as e:
			logger.exception(f"[Tracker] Ticket #{ticket.sequence} failed unexpectedly")
			return self._settle_failure(ticket, f"Unexpected error: {e}")
		return self._settle_success(ticket, page, on_commit)

	def _settle_success(self, ticket: RequestTicket, page: ResultPage, on_commit: Optional[CommitHook]) -> bool:
		if not self.is_live(ticket):
			# Superseded: no mutation at all, not even error clearing
			logger.debug(f"[Tracker] Discarding stale result of ticket #{ticket.sequence} (latest #{self._sequence})")
			return False
		self.loading = False
		self.error = None
		self.result = page
		if on_commit is not None:
			on_commit(ticket, page)
		logger.debug(f"[Tracker] Committed ticket #{ticket.sequence} | items={len(page.items)} total={page.total_count}")
		self._notify()
		return True

	def _settle_failure(self, ticket: RequestTicket, message: str) -> bool:
		if not self.is_live(ticket):
			logger.debug(f"[Tracker] Discarding stale failure of ticket #{ticket.sequence}: {message}")
			return False
		# Last known good result stays visible under the error
		self.loading = False
		self.error = message
		logger.warning(f"[Tracker] Ticket #{ticket.sequence} failed: {message}")
		self._notify()
		return True

	def supersede(self) -> None:
		"""Make every in-flight ticket stale without issuing a new one."""
		self._sequence += 1
		self.current_ticket = None
		self.loading = False

	def reset(self) -> None:
		"""Forget result and error (used when a view is cleared)."""
		self.result = None
		self.error = None

	def close(self) -> None:
		"""Teardown: no settlement may mutate state from now on."""
		self._closed = True
		self.loading = False
