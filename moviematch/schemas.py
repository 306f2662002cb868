"""
Pydantic schemas for the catalog REST API.
The UI never depends on raw response dictionaries: every payload is validated
into these models so a renamed backend field only needs a change here.
"""

from typing import Any, List, Optional  # precise typing for clarity

from pydantic import BaseModel, ConfigDict, Field  # response schema definitions


class _ApiModel(BaseModel):
	# Accept both the API's camelCase and our snake_case; ignore unknown keys
	model_config = ConfigDict(populate_by_name=True, extra='ignore')


# A single movie as listed by /movies, /movies/search and /movies/:id
class MovieOut(_ApiModel):
	id: str  # unique id (numbers are coerced to str)
	title: str  # display title
	year: Optional[int] = None  # release year
	genre: List[str] = Field(default_factory=list)  # genre values
	rating: Optional[float] = None  # 0..10
	director: Optional[str] = None  # director name
	description: Optional[str] = None  # synopsis
	review_count: int = Field(default=0, alias='reviewCount')  # number of reviews

	model_config = ConfigDict(populate_by_name=True, extra='ignore', coerce_numbers_to_str=True)


class ReviewOut(_ApiModel):
	id: str
	movie_id: Optional[str] = Field(default=None, alias='movieId')
	author: str
	rating: float
	comment: Optional[str] = None
	created_at: Optional[str] = Field(default=None, alias='createdAt')
	movie_title: Optional[str] = Field(default=None, alias='movieTitle')  # only on dashboard entries

	model_config = ConfigDict(populate_by_name=True, extra='ignore', coerce_numbers_to_str=True)


class GenreOption(_ApiModel):
	value: str  # value sent back as a filter
	label: str  # human-readable name


class GenreStat(_ApiModel):
	genre: str
	label: str
	count: int = 0
	avg_rating: float = Field(default=0.0, alias='avgRating')


class DashboardStats(_ApiModel):
	total_movies: int = Field(default=0, alias='totalMovies')
	total_reviews: int = Field(default=0, alias='totalReviews')
	avg_rating: float = Field(default=0.0, alias='avgRating')
	movies_by_genre: List[GenreStat] = Field(default_factory=list, alias='moviesByGenre')
	top_rated: List[MovieOut] = Field(default_factory=list, alias='topRated')
	most_reviewed: List[MovieOut] = Field(default_factory=list, alias='mostReviewed')
	recent_reviews: List[ReviewOut] = Field(default_factory=list, alias='recentReviews')

	@property
	def max_genre_count(self) -> int:
		"""Largest genre count (at least 1) used to scale the genre bars."""
		return max([g.count for g in self.movies_by_genre] + [1])


class AiEnrichment(_ApiModel):
	anecdote: Optional[str] = None
	fun_fact: Optional[str] = Field(default=None, alias='funFact')
	pitch: Optional[str] = None


class DiscoveredMovie(MovieOut):
	ai_enriched: Optional[AiEnrichment] = None  # absent when the backend has no AI key


class PaginationInfo(_ApiModel):
	total: int = 0
	page: int = 1
	pages: Optional[int] = None  # server-side page count; informational only
	limit: Optional[int] = None


# Uniform response envelope returned by every endpoint
class ApiEnvelope(_ApiModel):
	success: bool  # false means a reported error, not an exception
	data: Any = None  # payload (list, object, or None)
	total: Optional[int] = None  # catalog endpoint total
	count: Optional[int] = None  # items in this page
	pagination: Optional[PaginationInfo] = None  # search endpoint metadata
	error: Optional[str] = None  # message when success is false

	def total_count(self) -> int:
		"""Total matches, whichever way the endpoint reports it."""
		if self.total is not None:
			return self.total
		if self.pagination is not None:
			return self.pagination.total
		if self.count is not None:
			return self.count
		if isinstance(self.data, list):
			return len(self.data)
		return 0

	def error_message(self, default: str = 'Request failed') -> str:
		return self.error or default
