"""
Query coordinator module.
Turns filter drafts into API calls for one list/search view, in one of two modes:
- REACTIVE: every draft change fetches after a debounce (catalog filter panel)
- EXPLICIT: fetch only on submit, then paginate the applied filters (advanced search)

Both modes share the query builder (normalization + fingerprints) and the
request tracker (sequence numbers guard against out-of-order completion).
"""

import asyncio  # event-loop tasks for debounced applies
from types import MappingProxyType  # read-only applied snapshots
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Tuple, Union  # type annotations

from loguru import logger  # console logging
from pydantic import ValidationError as SchemaError  # envelope validation failures

from .config import DEBOUNCE_MS, ITEMS_PER_PAGE  # defaults
from .debounce import Debouncer  # quiet-period primitive
from .errors import ApiError, ValidationError  # local and API errors
from .models import CoordinatorState, CoordinatorStatus, QueryFingerprint, RequestTicket, ResultPage, SearchMode
from .query_builder import CATALOG_FILTERS, FilterSchema, Params, active_filter_tags, build_params, default_draft, fingerprint
from .request_tracker import RequestTracker  # sequence-number bookkeeping
from .schemas import ApiEnvelope  # transport envelope

# Transport collaborator: params -> envelope (a plain dict is accepted and validated)
FetchFn = Callable[[Params], Awaitable[Union[ApiEnvelope, Mapping[str, Any]]]]


class QueryCoordinator:
	"""
	Owns the draft, the applied snapshot, the current page and the visible results
	of one view. All methods run on the event loop thread; no locks are needed.
	"""

	def __init__(
		self,
		fetch_fn: FetchFn,
		mode: SearchMode = SearchMode.REACTIVE,
		schema: FilterSchema = CATALOG_FILTERS,
		page_size: int = ITEMS_PER_PAGE,
		debounce_ms: float = DEBOUNCE_MS,
		field_delays: Optional[Dict[str, float]] = None,
		on_change: Optional[Callable[[CoordinatorState], None]] = None,
	):
		if not isinstance(mode, SearchMode):
			raise ValidationError(f"Unknown search mode: {mode!r}")
		if page_size < 1:
			raise ValidationError(f"page_size must be >= 1, got {page_size}")

		self._fetch_fn = fetch_fn  # transport
		self.mode = mode  # reactive or explicit
		self.schema = schema  # field order and defaults
		self.page_size = page_size  # limit sent with every request
		self.field_delays = dict(field_delays or {})  # per-field debounce overrides (ms)
		self.on_change = on_change  # presentation listener

		self._draft: Dict[str, Any] = default_draft(schema)  # live-edited filters
		self._applied: Optional[Mapping[str, Any]] = None  # last committed filters
		self._page = 1  # last committed page
		self._committed: Optional[QueryFingerprint] = None  # identity of what is on screen
		self._requested: Optional[Tuple[Mapping[str, Any], int]] = None  # filters and page of the newest request
		self._tracker = RequestTracker(on_change=self._notify)
		self._debouncer: Debouncer[Dict[str, Any]] = Debouncer(
			debounce_ms, callback=self._on_debounced, initial=dict(self._draft)
		)
		self._tasks: Set[asyncio.Task] = set()  # debounced applies in flight
		self._closed = False

		logger.debug(f"[Coordinator:{schema.name}] Created | mode={mode.value} page_size={page_size} debounce_ms={debounce_ms}")

	# ------------------------------------------------------------------
	# Read-only views
	# ------------------------------------------------------------------

	@property
	def state(self) -> CoordinatorState:
		"""Fresh snapshot; safe to hand to rendering code."""
		return CoordinatorState(
			mode=self.mode,
			draft=dict(self._draft),
			applied=self._applied,
			page=self._page,
			loading=self._tracker.loading,
			error=self._tracker.error,
			results=self._tracker.result,
			last_ticket=self._tracker.current_ticket,
		)

	@property
	def status(self) -> CoordinatorStatus:
		return self.state.status

	@property
	def draft(self) -> Dict[str, Any]:
		return dict(self._draft)

	@property
	def applied(self) -> Optional[Mapping[str, Any]]:
		return self._applied

	@property
	def page(self) -> int:
		return self._page

	@property
	def results(self) -> Optional[ResultPage]:
		return self._tracker.result

	@property
	def closed(self) -> bool:
		return self._closed

	def active_filters(self, genre_labels: Optional[Mapping[str, str]] = None) -> List[Tuple[str, str]]:
		"""Tags describing the applied snapshot (empty before the first search)."""
		return active_filter_tags(self._applied, genre_labels)

	def _notify(self) -> None:
		if self.on_change is not None and not self._closed:
			self.on_change(self.state)

	def _target(self) -> Tuple[Mapping[str, Any], int]:
		"""Filters and page to refetch: the live request's while one is in flight, else the committed ones."""
		if self._tracker.loading and self._requested is not None:
			return self._requested
		return (self._applied if self._applied is not None else self._draft), self._page

	def _filters_in_flight(self) -> bool:
		"""True while the live request carries filters other than those on screen."""
		live = self._tracker.current_ticket
		if not self._tracker.loading or live is None or live.fingerprint is None:
			return False
		committed = self._committed.params if self._committed is not None else None
		return live.fingerprint.params != committed

	def _ensure_open(self) -> None:
		if self._closed:
			raise RuntimeError(f"Coordinator '{self.schema.name}' is closed")

	# ------------------------------------------------------------------
	# Operations
	# ------------------------------------------------------------------

	async def start(self) -> bool:
		"""Initial load: reactive views fetch defaults, explicit views stay idle."""
		self._ensure_open()
		if self.mode is SearchMode.REACTIVE:
			return await self.apply(self._draft, page=1, force=True)
		return False

	def update_draft(self, field: str, value: Any) -> None:
		"""
		Change one draft field. In reactive mode this re-arms the debounce; once
		quiet, the whole draft is applied at page 1.
		"""
		self._ensure_open()
		self._draft[field] = value
		self._notify()
		if self.mode is SearchMode.REACTIVE:
			self._debouncer.set(dict(self._draft), delay_ms=self.field_delays.get(field))

	def _on_debounced(self, filters: Dict[str, Any]) -> None:
		if self._closed:
			return
		# Filter changes always restart at page 1
		task = asyncio.get_running_loop().create_task(self.apply(filters, page=1))
		self._tasks.add(task)
		task.add_done_callback(self._on_task_done)

	def _on_task_done(self, task: asyncio.Task) -> None:
		self._tasks.discard(task)
		if not task.cancelled() and task.exception() is not None:
			logger.opt(exception=task.exception()).error(f"[Coordinator:{self.schema.name}] Debounced apply failed")

	async def apply(
		self,
		filters: Optional[Mapping[str, Any]] = None,
		page: int = 1,
		force: bool = False,
	) -> bool:
		"""
		Normalize `filters` (default: the current draft), issue the request and,
		if it is still the latest one when it settles, commit it as the applied
		snapshot at `page`. Returns True if the outcome reached visible state.
		"""
		self._ensure_open()
		if page < 1:
			raise ValidationError(f"Page must be >= 1, got {page}")

		snapshot = MappingProxyType(dict(self._draft if filters is None else filters))  # immutable copy
		fp = fingerprint(snapshot, page, self.schema)

		live = self._tracker.current_ticket
		if not force and self._tracker.loading and live is not None and live.fingerprint == fp:
			logger.debug(f"[Coordinator:{self.schema.name}] Identical request already in flight; skipping")
			return False
		if (
			not force
			and self.mode is SearchMode.REACTIVE
			and not self._tracker.loading
			and self._tracker.error is None
			and self._committed == fp
		):
			logger.debug(f"[Coordinator:{self.schema.name}] Results already match filters; skipping")
			return False

		params = build_params(snapshot, self.schema, page=page, limit=self.page_size)
		logger.info(f"[Coordinator:{self.schema.name}] Fetching page {page} | params={params}")

		def commit(ticket: RequestTicket, result: ResultPage) -> None:
			self._applied = snapshot
			self._page = page
			self._committed = fp

		self._requested = (snapshot, page)
		return await self._tracker.issue(lambda: self._fetch_page(params, page), fingerprint=fp, on_commit=commit)

	async def _fetch_page(self, params: Params, page: int) -> ResultPage:
		"""Call the transport and map its envelope onto a ResultPage."""
		raw = await self._fetch_fn(params)
		try:
			envelope = raw if isinstance(raw, ApiEnvelope) else ApiEnvelope.model_validate(raw)
		except SchemaError as e:
			raise ApiError(f"Unexpected response from the API: {e.error_count()} invalid field(s)") from e

		if not envelope.success:
			raise ApiError(envelope.error_message('Search failed'))

		data = envelope.data
		if data is None:
			items: List[Any] = []
		elif isinstance(data, list):
			items = data
		else:
			raise ApiError("Unexpected response from the API: expected a list of results")

		# Page count is recomputed from total/page_size, never taken from the server
		return ResultPage(items=list(items), total_count=envelope.total_count(), page_size=self.page_size, page_number=page)

	async def change_page(self, new_page: int) -> bool:
		"""
		Re-issue the applied filters at another page.
		Out-of-range pages are rejected locally with no state change and no request.
		"""
		self._ensure_open()
		if self.mode is SearchMode.EXPLICIT and self._applied is None:
			raise ValidationError("Run a search before changing pages")
		results = self._tracker.result
		if results is None:
			raise ValidationError("No results to paginate yet")
		if self._filters_in_flight():
			# the page count on screen belongs to the old filters
			raise ValidationError("Results for the new filters are still loading")
		total_pages = results.total_pages
		if new_page < 1 or new_page > total_pages:
			raise ValidationError(f"Page {new_page} is out of range (1-{total_pages})")

		snapshot = self._applied if self._applied is not None else self._draft
		return await self.apply(snapshot, page=new_page)

	async def clear(self) -> bool:
		"""
		Reset the draft and forget applied filters, results and errors.
		Reactive views refetch defaults immediately; explicit views return to idle.
		"""
		self._ensure_open()
		self._debouncer.cancel()
		self._cancel_tasks()  # debounced applies that fired but have not issued yet
		self._tracker.supersede()  # a late response must not bring back cleared results
		self._tracker.reset()
		self._draft = default_draft(self.schema)
		self._debouncer.value = dict(self._draft)
		self._applied = None
		self._page = 1
		self._committed = None
		self._requested = None
		logger.info(f"[Coordinator:{self.schema.name}] Cleared")
		self._notify()

		if self.mode is SearchMode.REACTIVE:
			return await self.apply(self._draft, page=1, force=True)
		return False

	async def invalidate(self) -> bool:
		"""
		Refetch the current filters at the current page after data changed elsewhere.
		A request still in flight is re-issued as is, so newer filters are not dropped.
		If the page is now past the end, `state.page_out_of_range` becomes True and
		the caller steps back.
		"""
		self._ensure_open()
		if self.mode is SearchMode.EXPLICIT and self._applied is None and not self._tracker.loading:
			logger.debug(f"[Coordinator:{self.schema.name}] Nothing applied yet; invalidate ignored")
			return False
		snapshot, page = self._target()
		return await self.apply(snapshot, page=page, force=True)

	# Hook handed to create/update/delete collaborators
	notify_changed = invalidate

	async def drain(self) -> None:
		"""Wait for the pending debounce and every request this coordinator started."""
		while True:
			await self._debouncer.wait()
			running = [t for t in self._tasks if not t.done()]
			if not running and not self._debouncer.pending:
				return
			if running:
				await asyncio.wait(running)

	def close(self) -> None:
		"""Teardown: nothing may mutate state after this returns."""
		if self._closed:
			return
		self._closed = True
		self._debouncer.close()
		self._tracker.close()
		self._cancel_tasks()
		logger.debug(f"[Coordinator:{self.schema.name}] Closed")

	def _cancel_tasks(self) -> None:
		for task in list(self._tasks):
			task.cancel()
		self._tasks.clear()
