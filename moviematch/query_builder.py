"""
Query builder module.
Maps a structured filter object to a normalized, order-independent parameter
sequence used both to build the request and to fingerprint it.
"""

from dataclasses import dataclass  # immutable field declarations
from typing import Any, Dict, List, Mapping, Optional, Tuple  # type annotations

from .models import QueryFingerprint  # staleness identity

# Value emitted by "All genres" / "Any rating" style selections; dropped like ''
NO_SELECTION = '__any__'


Params = List[Tuple[str, str]]


@dataclass(frozen=True)
class FilterField:
	name: str  # parameter name sent to the API
	label: str  # human-readable name for filter tags
	default: Any = ''  # value of a freshly cleared draft


@dataclass(frozen=True)
class FilterSchema:
	"""Ordered field declarations for one filter panel."""
	name: str
	fields: Tuple[FilterField, ...]

	@property
	def field_names(self) -> Tuple[str, ...]:
		return tuple(f.name for f in self.fields)

	def defaults(self) -> Dict[str, Any]:
		"""A fresh, mutable draft holding every field's default."""
		return {f.name: f.default for f in self.fields}


# Reactive catalog list: each selection fetches (after debounce for free text)
CATALOG_FILTERS = FilterSchema(
	name='catalog',
	fields=(
		FilterField('genre', 'Genre'),
		FilterField('minRating', 'Min rating'),
		FilterField('director', 'Director'),
		FilterField('sortBy', 'Sort by'),
		FilterField('order', 'Order', default='desc'),
	),
)

# Explicit advanced search: fetch on submit, then paginate the applied snapshot
SEARCH_FILTERS = FilterSchema(
	name='search',
	fields=(
		FilterField('title', 'Title'),
		FilterField('director', 'Director'),
		FilterField('genre', 'Genre'),
		FilterField('yearMin', 'Year from'),
		FilterField('yearMax', 'Year to'),
		FilterField('ratingMin', 'Rating from'),
		FilterField('ratingMax', 'Rating to'),
	),
)


def is_empty_value(value: Any) -> bool:
	"""True for values that mean "no filter": None, '', or the no-selection sentinel."""
	return value is None or value == '' or value == NO_SELECTION


def _to_param(value: Any) -> str:
	# bool before int: True is an int in Python
	if isinstance(value, bool):
		return 'true' if value else 'false'
	if isinstance(value, float) and value.is_integer():
		return str(int(value))  # 8.0 -> "8", matching what a form would send
	return str(value)  # strings are sent verbatim, whitespace included


def build_params(
	filters: Mapping[str, Any],
	schema: Optional[FilterSchema] = None,
	page: Optional[int] = None,
	limit: Optional[int] = None,
) -> Params:
	"""
	Normalize filters into an ordered list of (key, value) pairs.
	- empty values are omitted
	- range bounds are included independently (min alone means "at least")
	- declared fields come first in declaration order, then any extra keys sorted by name
	- page and limit, when given, are appended last
	"""
	declared = schema.field_names if schema else ()
	extras = sorted(k for k in filters if k not in declared)  # stable order for undeclared keys

	params: Params = []
	for key in list(declared) + extras:
		value = filters.get(key)
		if is_empty_value(value):
			continue
		params.append((key, _to_param(value)))

	if page is not None:
		params.append(('page', str(page)))
	if limit is not None:
		params.append(('limit', str(limit)))
	return params


def fingerprint(
	filters: Mapping[str, Any],
	page: int,
	schema: Optional[FilterSchema] = None,
) -> QueryFingerprint:
	"""Hashable identity of (filters, page); equal for logically equal drafts."""
	return QueryFingerprint(params=tuple(build_params(filters, schema)), page=page)


def default_draft(schema: Optional[FilterSchema] = None) -> Dict[str, Any]:
	return schema.defaults() if schema else {}


def _range_tag(low: Any, high: Any) -> Optional[str]:
	if not is_empty_value(low) and not is_empty_value(high):
		return f"{low}-{high}"
	if not is_empty_value(low):
		return f"{low}+"
	if not is_empty_value(high):
		return f"up to {high}"
	return None


def active_filter_tags(
	filters: Optional[Mapping[str, Any]],
	genre_labels: Optional[Mapping[str, str]] = None,
) -> List[Tuple[str, str]]:
	"""
	Human-readable (label, value) pairs for the filters actually applied,
	e.g. [('Title', '"matrix"'), ('Year', '1999+')].
	"""
	if not filters:
		return []
	genre_labels = genre_labels or {}
	tags: List[Tuple[str, str]] = []

	if not is_empty_value(filters.get('title')):
		tags.append(('Title', f"\"{filters['title']}\""))
	if not is_empty_value(filters.get('director')):
		tags.append(('Director', f"\"{filters['director']}\""))
	if not is_empty_value(filters.get('genre')):
		genre = str(filters['genre'])
		tags.append(('Genre', genre_labels.get(genre, genre)))  # fall back to the raw value

	year = _range_tag(filters.get('yearMin'), filters.get('yearMax'))
	if year:
		tags.append(('Year', year))

	# catalog panel uses a single lower bound; search panel uses a range
	rating = _range_tag(filters.get('ratingMin', filters.get('minRating')), filters.get('ratingMax'))
	if rating:
		tags.append(('Rating', rating))

	if not is_empty_value(filters.get('sortBy')):
		order = filters.get('order')
		tags.append(('Sort', f"{filters['sortBy']} ({order})" if not is_empty_value(order) else str(filters['sortBy'])))
	return tags
