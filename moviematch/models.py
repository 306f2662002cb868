"""
Data models for the Movie Match query coordination layer.
Defines the core data structures shared by the builder, tracker and coordinator.
"""

# Import dataclass to define simple "record-like" classes without boilerplate
from dataclasses import dataclass, field  # auto-generates __init__, __repr__, etc.
# Enum for the small closed sets (mode, status)
from enum import Enum  # named constants
# Ceiling division for page counts
import math  # ceil
# Typing helpers for precise and self-documenting types
from typing import Any, Dict, List, Mapping, Optional, Tuple  # containers and optionals


class SearchMode(Enum):
	"""When a coordinator turns draft changes into requests."""

	REACTIVE = "reactive"  # every (debounced) draft change fetches
	EXPLICIT = "explicit"  # fetch only on a user-initiated search


class CoordinatorStatus(Enum):
	"""Visible lifecycle of a coordinator, derived from its state."""

	IDLE = "idle"  # no search performed yet (explicit mode only)
	LOADING = "loading"  # the live request is in flight
	READY = "ready"  # last live request succeeded
	FAILED = "failed"  # last live request failed; stale results may still show


@dataclass(frozen=True)
class QueryFingerprint:
	"""
	Normalized, order-independent identity of a request.
	Two fingerprints are equal iff they would produce the same request.
	"""
	params: Tuple[Tuple[str, str], ...]  # normalized filter parameters in declaration order
	page: int  # requested page number


@dataclass(frozen=True)
class RequestTicket:
	"""One issued request; only the highest sequence number may touch visible state."""
	sequence: int  # monotonic issue counter
	fingerprint: Optional[QueryFingerprint] = None  # what was asked for


@dataclass
class ResultPage:
	"""
	One page of results as returned by the API.
	Page counts are always recomputed here from total_count and page_size.
	"""
	items: List[Any]  # ordered entities for this page
	total_count: int  # total matches across all pages
	page_size: int  # requested page size (limit)
	page_number: int  # 1-based page number

	@property
	def total_pages(self) -> int:
		"""ceil(total_count / page_size); zero for an empty result set."""
		if self.page_size <= 0:  # guard against a misconfigured limit
			return 0
		return math.ceil(self.total_count / self.page_size)

	@property
	def has_pagination(self) -> bool:
		"""Pagination controls are shown only when there is more than one page."""
		return self.total_pages > 1

	@property
	def has_previous(self) -> bool:
		return self.page_number > 1

	@property
	def has_next(self) -> bool:
		return self.page_number < self.total_pages

	@property
	def is_empty(self) -> bool:
		return not self.items


@dataclass
class CoordinatorState:
	"""
	Read-only snapshot of a coordinator handed to the presentation layer.
	Mutating a snapshot has no effect on the coordinator that produced it.
	"""
	mode: SearchMode  # reactive or explicit
	draft: Dict[str, Any]  # live-edited filters
	applied: Optional[Mapping[str, Any]] = None  # filters of the last committed search
	page: int = 1  # current page number
	loading: bool = False  # live request in flight
	error: Optional[str] = None  # message of the last live failure
	results: Optional[ResultPage] = None  # last known good page
	last_ticket: Optional[RequestTicket] = field(default=None, compare=False)  # most recently issued ticket

	@property
	def status(self) -> CoordinatorStatus:
		if self.loading:
			return CoordinatorStatus.LOADING
		if self.error is not None:
			return CoordinatorStatus.FAILED
		if self.results is None:
			return CoordinatorStatus.IDLE
		return CoordinatorStatus.READY

	@property
	def total_pages(self) -> int:
		return self.results.total_pages if self.results else 0

	@property
	def page_out_of_range(self) -> bool:
		"""
		True when the committed page lies beyond the last page, e.g. after the
		last item of the last page was deleted and the list was invalidated.
		"""
		if self.results is None:
			return False
		return self.page > max(self.total_pages, 1)
