"""
HTTP client for the catalog REST API.
Endpoints (relative to API_URL):
- GET    /movies                    catalog list with simple filters + pagination
- GET    /movies/search             advanced search (title, director, ranges)
- GET    /movies/genres             valid genres as {value, label}
- GET    /movies/discover           random picks, optionally AI-enriched
- GET    /movies/:id                single movie
- POST   /movies, PUT/DELETE /movies/:id
- GET    /movies/:id/reviews, POST /movies/:id/reviews
- GET    /dashboard                 server-side aggregates

Every method returns a validated ApiEnvelope; success=false is returned, not raised.
Transport failures raise NetworkError, unreadable bodies raise ApiError.
"""

# Run blocking HTTP calls off the event loop for the async fetchers
import asyncio  # to_thread
# Typing to make function signatures clearer
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union  # type hints

# HTTP client used by the UI and scripts
import requests  # make web requests to the API
# Pydantic validation errors surface as ApiError
from pydantic import ValidationError as SchemaError  # envelope/entity validation

# Console logging
from loguru import logger  # console logger

from .config import API_URL, REQUEST_TIMEOUT_S  # defaults
from .errors import ApiError, NetworkError  # error taxonomy
from .schemas import ApiEnvelope, DashboardStats, DiscoveredMovie, GenreOption, MovieOut, ReviewOut  # response schemas

QueryParams = Union[Sequence[Tuple[str, str]], Dict[str, Any], None]


class CatalogClient:
	"""
	Thin synchronous wrapper over requests.Session, one method per endpoint.
	"""

	def __init__(
		self,
		base_url: str = API_URL,
		timeout: float = REQUEST_TIMEOUT_S,
		session: Optional[requests.Session] = None,
	):
		self.base_url = base_url.rstrip('/')  # no trailing slash
		self.timeout = timeout  # per-request timeout in seconds
		self.session = session or requests.Session()  # connection pooling

	def _request(
		self,
		method: str,
		path: str,
		params: QueryParams = None,
		json: Optional[Dict[str, Any]] = None,
	) -> ApiEnvelope:
		"""Send one request and validate the JSON envelope."""
		url = f"{self.base_url}{path}"  # absolute URL
		logger.debug(f"[Client] {method} {path} params={params}")
		try:
			# A list of pairs keeps the query-string order stable
			resp = self.session.request(method, url, params=params, json=json, timeout=self.timeout)
		except requests.RequestException as e:  # connection refused, DNS, timeout, ...
			logger.warning(f"[Client] {method} {path} failed: {e}")
			raise NetworkError("Could not connect to the API") from e

		try:
			payload = resp.json()  # every endpoint answers with a JSON envelope
		except ValueError as e:
			raise ApiError(f"Invalid response from the API (HTTP {resp.status_code})", status_code=resp.status_code) from e

		try:
			envelope = ApiEnvelope.model_validate(payload)
		except SchemaError as e:
			raise ApiError(f"Unexpected response from the API (HTTP {resp.status_code})", status_code=resp.status_code) from e

		if not envelope.success:
			logger.warning(f"[Client] {method} {path} -> HTTP {resp.status_code}: {envelope.error_message()}")
		return envelope

	# --- health -------------------------------------------------------------

	def health(self) -> bool:
		"""True if the API answers the genres endpoint; never raises."""
		try:
			resp = self.session.get(f"{self.base_url}/movies/genres", timeout=min(self.timeout, 3))
			return resp.ok
		except requests.RequestException:
			return False

	# --- movies -------------------------------------------------------------

	def get_movies(self, params: QueryParams = None) -> ApiEnvelope:
		return self._request('GET', '/movies', params=params)

	def search_movies(self, params: QueryParams = None) -> ApiEnvelope:
		return self._request('GET', '/movies/search', params=params)

	def get_genres(self) -> ApiEnvelope:
		return self._request('GET', '/movies/genres')

	def get_movie(self, movie_id: str) -> ApiEnvelope:
		return self._request('GET', f"/movies/{movie_id}")

	def create_movie(self, movie: Dict[str, Any]) -> ApiEnvelope:
		return self._request('POST', '/movies', json=movie)

	def update_movie(self, movie_id: str, movie: Dict[str, Any]) -> ApiEnvelope:
		return self._request('PUT', f"/movies/{movie_id}", json=movie)

	def delete_movie(self, movie_id: str) -> ApiEnvelope:
		return self._request('DELETE', f"/movies/{movie_id}")

	def discover_movies(self, count: int = 3) -> ApiEnvelope:
		return self._request('GET', '/movies/discover', params=[('count', str(count))])

	# --- reviews ------------------------------------------------------------

	def get_reviews(self, movie_id: str) -> ApiEnvelope:
		return self._request('GET', f"/movies/{movie_id}/reviews")

	def create_review(self, movie_id: str, review: Dict[str, Any]) -> ApiEnvelope:
		return self._request('POST', f"/movies/{movie_id}/reviews", json=review)

	# --- dashboard ----------------------------------------------------------

	def get_dashboard_stats(self) -> ApiEnvelope:
		return self._request('GET', '/dashboard')


def _adapt_list(envelope: ApiEnvelope, model) -> List[Any]:
	"""Validate every item of a list payload into `model`."""
	if envelope.data is None:
		return []
	if not isinstance(envelope.data, list):
		raise ApiError("Unexpected response from the API: expected a list")
	try:
		return [model.model_validate(item) for item in envelope.data]
	except SchemaError as e:
		raise ApiError(f"Unexpected {model.__name__} payload from the API") from e


def adapt_movies(envelope: ApiEnvelope) -> ApiEnvelope:
	"""Return a copy of a successful envelope whose data items are MovieOut."""
	if not envelope.success:
		return envelope
	return envelope.model_copy(update={'data': _adapt_list(envelope, MovieOut)})


def parse_genres(envelope: ApiEnvelope) -> List[GenreOption]:
	return _adapt_list(envelope, GenreOption) if envelope.success else []


def parse_reviews(envelope: ApiEnvelope) -> List[ReviewOut]:
	return _adapt_list(envelope, ReviewOut) if envelope.success else []


def parse_discovered(envelope: ApiEnvelope) -> List[DiscoveredMovie]:
	return _adapt_list(envelope, DiscoveredMovie) if envelope.success else []


def parse_movie(envelope: ApiEnvelope) -> Optional[MovieOut]:
	if not envelope.success or envelope.data is None:
		return None
	try:
		return MovieOut.model_validate(envelope.data)
	except SchemaError as e:
		raise ApiError("Unexpected movie payload from the API") from e


def parse_dashboard(envelope: ApiEnvelope) -> Optional[DashboardStats]:
	if not envelope.success or envelope.data is None:
		return None
	try:
		return DashboardStats.model_validate(envelope.data)
	except SchemaError as e:
		raise ApiError("Unexpected dashboard payload from the API") from e


def catalog_fetcher(client: CatalogClient):
	"""Async page fetcher for the reactive catalog list (GET /movies)."""
	async def fetch(params) -> ApiEnvelope:
		envelope = await asyncio.to_thread(client.get_movies, list(params))  # keep the loop responsive
		return adapt_movies(envelope)
	return fetch


def search_fetcher(client: CatalogClient):
	"""Async page fetcher for the explicit advanced search (GET /movies/search)."""
	async def fetch(params) -> ApiEnvelope:
		envelope = await asyncio.to_thread(client.search_movies, list(params))
		return adapt_movies(envelope)
	return fetch
