"""
Streamlit UI for Movie Match.
Browses the catalog REST API (default http://localhost:3000/api):
- Movies: reactive filters (debounced director search) with pagination, create/edit/delete, reviews
- Search: explicit advanced search (submit to run, paginate the applied filters)
- Dashboard: server-side aggregates
- Discover: random picks with optional AI insights

Run UI:  streamlit run streamlit_app.py
"""

# Coordinators are async; each interaction runs to completion inside asyncio.run
import asyncio  # event loop per interaction
# Typing to make function signatures clearer
from typing import Dict, List, Optional  # indicates values can be None

# Streamlit framework to build a simple interactive UI
import streamlit as st  # UI primitives
# Console logging
from loguru import logger  # console logger

from moviematch.api_client import (  # HTTP client + adapters
	CatalogClient,
	catalog_fetcher,
	parse_dashboard,
	parse_discovered,
	parse_genres,
	parse_movie,
	parse_reviews,
	search_fetcher,
)
from moviematch.config import API_URL, DEBOUNCE_MS, ITEMS_PER_PAGE, setup_logging  # settings
from moviematch.coordinator import QueryCoordinator  # query coordination
from moviematch.errors import CatalogError, ValidationError  # user-facing errors
from moviematch.models import CoordinatorState, SearchMode  # state snapshot
from moviematch.query_builder import CATALOG_FILTERS, NO_SELECTION, SEARCH_FILTERS  # filter schemas
from moviematch.schemas import MovieOut  # movie rows

setup_logging()  # single stderr sink

# Configure Streamlit page (title and layout width)
st.set_page_config(page_title="Movie Match", layout="wide")  # wide layout
st.title("🎬 Movie Match")  # friendly header
st.caption("Manage your movie collection")

RATING_CHOICES = [NO_SELECTION, '9', '8.5', '8', '7']  # catalog "min rating" select
SORT_CHOICES = ['', 'rating', 'year', 'title']  # '' means server default
ORDER_CHOICES = ['desc', 'asc']
SEARCH_KEYS = {name: f"search_{name}" for name in SEARCH_FILTERS.field_names}  # widget keys


def run(coro):
	"""Run one coordinator operation (and anything it spawned) to completion."""
	return asyncio.run(coro)


async def _settle(coordinator: QueryCoordinator, changes: Dict[str, str]) -> None:
	for field, value in changes.items():
		coordinator.update_draft(field, value)
	await coordinator.drain()  # debounce + request finish before the page renders


async def _refresh_after_change(coordinator: QueryCoordinator) -> None:
	"""Invalidate, then step back if the current page no longer exists."""
	await coordinator.invalidate()
	state = coordinator.state
	if state.page_out_of_range:
		logger.info(f"[UI] Page {state.page} now past the end ({state.total_pages}); stepping back")
		await coordinator.apply(state.applied, page=max(state.total_pages, 1), force=True)


# Sidebar contains configuration controls
with st.sidebar:
	st.header("Settings")  # section label
	api_url = st.text_input("API URL", API_URL)  # where the API lives

# (Re)build the client and coordinators when the API URL changes
if st.session_state.get('api_url') != api_url:
	for key in ('catalog', 'search'):
		old: Optional[QueryCoordinator] = st.session_state.get(key)
		if old is not None:
			old.close()  # teardown: no late updates from the old backend
	client = CatalogClient(base_url=api_url)
	st.session_state['api_url'] = api_url
	st.session_state['client'] = client
	st.session_state['catalog'] = QueryCoordinator(
		catalog_fetcher(client),
		mode=SearchMode.REACTIVE,
		schema=CATALOG_FILTERS,
		page_size=ITEMS_PER_PAGE,
		debounce_ms=DEBOUNCE_MS,
		field_delays={'genre': 0, 'minRating': 0, 'sortBy': 0, 'order': 0},  # selects apply at once
	)
	st.session_state['search'] = QueryCoordinator(
		search_fetcher(client),
		mode=SearchMode.EXPLICIT,
		schema=SEARCH_FILTERS,
		page_size=ITEMS_PER_PAGE,
	)
	st.session_state.pop('genres', None)
	st.session_state.pop('dashboard', None)
	run(st.session_state['catalog'].start())  # initial catalog load

client: CatalogClient = st.session_state['client']
catalog: QueryCoordinator = st.session_state['catalog']
search: QueryCoordinator = st.session_state['search']

# Quick reachability probe shown in the sidebar
if client.health():
	st.sidebar.success("API reachable.")
else:
	st.sidebar.info("API health check failed; requests may error.")


def load_genres() -> List:
	"""Genres are loaded once per session; failures just mean an empty list."""
	if 'genres' not in st.session_state:
		try:
			st.session_state['genres'] = parse_genres(client.get_genres())
		except CatalogError as e:
			logger.warning(f"[UI] Could not load genres: {e}")
			return []
	return st.session_state['genres']


genres = load_genres()
genre_labels = {g.value: g.label for g in genres}  # value -> label
genre_values = [g.value for g in genres]


def genre_label(value: str) -> str:
	return 'All genres' if value in (NO_SELECTION, '') else genre_labels.get(value, value)


def go_to_page(coordinator: QueryCoordinator, page: int) -> None:
	try:
		run(coordinator.change_page(page))
	except ValidationError as e:
		st.warning(str(e))


def render_pagination(coordinator: QueryCoordinator, state: CoordinatorState, key: str) -> None:
	"""Previous / Next controls; absent when everything fits on one page."""
	if state.results is None or not state.results.has_pagination:
		return
	c1, c2, c3 = st.columns([1, 2, 1])
	with c1:
		st.button("Previous", key=f"{key}_prev", disabled=state.page <= 1 or state.loading,
			on_click=go_to_page, args=(coordinator, state.page - 1))
	with c2:
		st.write(f"Page {state.page} of {state.total_pages}")
	with c3:
		st.button("Next", key=f"{key}_next", disabled=state.page >= state.total_pages or state.loading,
			on_click=go_to_page, args=(coordinator, state.page + 1))


def render_movie(movie: MovieOut) -> None:
	st.subheader(f"{movie.title} ({movie.year or '?'})")  # title + year
	st.caption(f"{movie.rating if movie.rating is not None else '-'}/10 · {movie.director or 'Unknown director'}")
	if movie.genre:
		st.write(f"Genres: {', '.join(genre_labels.get(g, g) for g in movie.genre)}")  # genres
	if movie.description:
		st.write(movie.description)  # synopsis
	if movie.review_count:
		st.caption(f"{movie.review_count} review{'s' if movie.review_count != 1 else ''}")


def refresh_lists() -> None:
	"""Both views show catalog data; refresh whichever has something on screen."""
	run(_refresh_after_change(catalog))
	if search.applied is not None:
		run(_refresh_after_change(search))


def ask_delete(movie_id: Optional[str]) -> None:
	st.session_state['confirm_delete'] = movie_id


def delete_movie(movie_id: str) -> None:
	st.session_state['confirm_delete'] = None
	try:
		envelope = client.delete_movie(movie_id)
	except CatalogError as e:
		st.session_state['flash_error'] = str(e)
		return
	if not envelope.success:
		st.session_state['flash_error'] = envelope.error_message('Failed to delete movie')
		return
	if st.session_state.get('selected_movie') == movie_id:
		st.session_state['selected_movie'] = None
	refresh_lists()


def select_movie(movie_id: Optional[str]) -> None:
	st.session_state['selected_movie'] = movie_id


def edit_movie(movie_id: Optional[str]) -> None:
	st.session_state['editing_movie'] = movie_id


# ----------------------------------------------------------------------
# Movie detail panel (reviews)
# ----------------------------------------------------------------------

def render_movie_detail(movie_id: str) -> None:
	try:
		movie = parse_movie(client.get_movie(movie_id))
		reviews = parse_reviews(client.get_reviews(movie_id))
	except CatalogError as e:
		st.error(str(e))
		return
	if movie is None:
		st.error("Movie not found")
		return

	with st.container(border=True):
		st.button("Close", key="detail_close", on_click=select_movie, args=(None,))
		render_movie(movie)
		st.markdown("#### Reviews")
		if not reviews:
			st.caption("No reviews yet. Be the first!")
		for review in reviews:
			st.write(f"**{review.author}** {'★' * int(review.rating)}{'☆' * (5 - int(review.rating))}")
			if review.comment:
				st.write(review.comment)

		with st.form("review_form", clear_on_submit=True):
			st.markdown("#### Write a Review")
			author = st.text_input("Name")
			rating = st.slider("Rating", min_value=1, max_value=5, value=5)
			comment = st.text_area("Comment")
			if st.form_submit_button("Submit review"):
				if not author.strip():
					st.warning("Please enter your name")
				else:
					try:
						envelope = client.create_review(movie_id, {'author': author, 'rating': rating, 'comment': comment})
					except CatalogError as e:
						st.error(str(e))
					else:
						if envelope.success:
							refresh_lists()  # review counts changed
							st.rerun()
						else:
							st.error(envelope.error_message('Failed to create review'))


def render_movie_form() -> None:
	"""Create a movie; the list refreshes in place on success."""
	with st.expander("Add a movie"):
		with st.form("movie_form", clear_on_submit=True):
			title = st.text_input("Title")
			year = st.number_input("Year", min_value=1888, max_value=2100, value=2000, step=1)
			chosen = st.multiselect("Genres", genre_values, format_func=genre_label)
			rating = st.number_input("Rating", min_value=0.0, max_value=10.0, value=7.0, step=0.1)
			director = st.text_input("Director")
			description = st.text_area("Description")
			if st.form_submit_button("Add movie"):
				if not chosen:
					st.warning("Please select at least one genre")  # validated before sending
					return
				movie = {
					'title': title, 'year': int(year), 'genre': chosen,
					'rating': float(rating), 'director': director, 'description': description,
				}
				try:
					envelope = client.create_movie(movie)
				except CatalogError as e:
					st.error(str(e))
					return
				if envelope.success:
					refresh_lists()
					st.success(f"Added {title}")
				else:
					st.error(envelope.error_message('Failed to create movie'))


def render_movie_edit_form(movie: MovieOut) -> None:
	"""Edit a movie in place of its card; saving refreshes both lists."""
	with st.form(f"edit_form_{movie.id}"):
		title = st.text_input("Title", movie.title)
		e1, e2 = st.columns(2)
		with e1:
			year = st.number_input("Year", min_value=1888, max_value=2100, value=movie.year or 2000, step=1)
		with e2:
			rating = st.number_input("Rating", min_value=0.0, max_value=10.0,
				value=float(movie.rating if movie.rating is not None else 0.0), step=0.1)
		# keep genres the select list does not know about
		options = genre_values + [g for g in movie.genre if g not in genre_values]
		chosen = st.multiselect("Genres", options, default=movie.genre, format_func=genre_label)
		director = st.text_input("Director", movie.director or '')
		description = st.text_area("Description", movie.description or '')
		s1, s2, _ = st.columns([1, 1, 4])
		with s1:
			saved = st.form_submit_button("Save", type="primary")
		with s2:
			cancelled = st.form_submit_button("Cancel")

	if cancelled:
		edit_movie(None)
		st.rerun()
	if not saved:
		return
	if not chosen:
		st.warning("Please select at least one genre")
		return
	update = {
		'title': title, 'year': int(year), 'genre': chosen,
		'rating': float(rating), 'director': director, 'description': description,
	}
	try:
		envelope = client.update_movie(movie.id, update)
	except CatalogError as e:
		st.error(str(e))
		return
	if not envelope.success:
		st.error(envelope.error_message('Failed to update movie'))
		return
	edit_movie(None)
	refresh_lists()
	st.rerun()


# ----------------------------------------------------------------------
# Tabs
# ----------------------------------------------------------------------

movies_tab, search_tab, dashboard_tab, discover_tab = st.tabs(["Movies", "Search", "Dashboard", "Discover"])

with movies_tab:
	render_movie_form()

	# Filters: each change feeds the reactive coordinator
	draft = catalog.draft
	f1, f2, f3, f4, f5 = st.columns(5)
	with f1:
		genre = st.selectbox("Genre", [NO_SELECTION] + genre_values, format_func=genre_label, key="catalog_genre")
	with f2:
		min_rating = st.selectbox("Min Rating", RATING_CHOICES, key="catalog_min_rating",
			format_func=lambda v: 'Any rating' if v == NO_SELECTION else f"{v}+")
	with f3:
		director = st.text_input("Director", key="catalog_director", placeholder="Search director...")
	with f4:
		sort_by = st.selectbox("Sort by", SORT_CHOICES, key="catalog_sort", format_func=lambda v: v.title() or 'Default')
	with f5:
		order = st.selectbox("Order", ORDER_CHOICES, key="catalog_order",
			format_func=lambda v: 'Descending' if v == 'desc' else 'Ascending')

	widget_values = {'genre': genre, 'minRating': min_rating, 'director': director, 'sortBy': sort_by, 'order': order}
	changes = {k: v for k, v in widget_values.items() if draft.get(k) != v and not (draft.get(k) == '' and v == NO_SELECTION)}
	if changes:
		run(_settle(catalog, changes))

	state = catalog.state
	flash = st.session_state.pop('flash_error', None)
	if flash:
		st.error(flash)  # from the last delete
	if state.error:
		st.error(state.error)  # stale results stay below
	if state.loading:
		st.info("Loading movies...")
	elif state.results is not None:
		items = state.results.items
		if not items:
			st.write("No movies found. Try adjusting your filters.")
		else:
			st.markdown(f"### Movies ({state.results.total_count})")
		for movie in items:
			with st.container(border=True):
				if st.session_state.get('editing_movie') == movie.id:
					render_movie_edit_form(movie)
					continue
				render_movie(movie)
				if st.session_state.get('confirm_delete') == movie.id:
					st.warning(f"Are you sure you want to delete {movie.title}?")
					y1, y2, _ = st.columns([1, 1, 4])
					with y1:
						st.button("Yes, delete", key=f"confirm_delete_{movie.id}", type="primary",
							on_click=delete_movie, args=(movie.id,))
					with y2:
						st.button("Cancel", key=f"cancel_delete_{movie.id}", on_click=ask_delete, args=(None,))
					continue
				b1, b2, b3, _ = st.columns([1, 1, 1, 3])
				with b1:
					st.button("Reviews", key=f"reviews_{movie.id}", on_click=select_movie, args=(movie.id,))
				with b2:
					st.button("Edit", key=f"edit_{movie.id}", on_click=edit_movie, args=(movie.id,))
				with b3:
					st.button("Delete", key=f"delete_{movie.id}", on_click=ask_delete, args=(movie.id,))
		render_pagination(catalog, state, key="catalog")

	selected = st.session_state.get('selected_movie')
	if selected:
		render_movie_detail(selected)


def clear_search() -> None:
	for key in SEARCH_KEYS.values():
		st.session_state[key] = NO_SELECTION if key == SEARCH_KEYS['genre'] else ''
	run(search.clear())


with search_tab:
	with st.form("search_form"):
		st.markdown("### Advanced Search")
		s1, s2, s3 = st.columns(3)
		with s1:
			st.text_input("Title", key=SEARCH_KEYS['title'], placeholder='e.g. "star", "dark", "lord"')
		with s2:
			st.text_input("Director", key=SEARCH_KEYS['director'], placeholder='e.g. "nolan", "spielberg"')
		with s3:
			st.selectbox("Genre", [NO_SELECTION] + genre_values, format_func=genre_label, key=SEARCH_KEYS['genre'])
		r1, r2, r3, r4 = st.columns(4)
		with r1:
			st.text_input("Year from", key=SEARCH_KEYS['yearMin'])
		with r2:
			st.text_input("Year to", key=SEARCH_KEYS['yearMax'])
		with r3:
			st.text_input("Rating from", key=SEARCH_KEYS['ratingMin'])
		with r4:
			st.text_input("Rating to", key=SEARCH_KEYS['ratingMax'])
		submitted = st.form_submit_button("Search", type="primary", disabled=search.state.loading)

	st.button("Clear", key="search_clear", on_click=clear_search)

	if submitted:
		for name, key in SEARCH_KEYS.items():
			search.update_draft(name, st.session_state.get(key, ''))  # explicit mode: draft only
		run(search.apply(page=1))

	state = search.state
	if state.error:
		st.error(state.error)

	tags = search.active_filters(genre_labels)
	if tags:
		st.write("Filters applied: " + "  ".join(f"**{label}:** {value}" for label, value in tags))

	if state.results is not None:
		total = state.results.total_count
		st.markdown(f"### Found {total} movie{'s' if total != 1 else ''}" if total else "### No movies found")
		for movie in state.results.items:
			with st.container(border=True):
				render_movie(movie)
		render_pagination(search, state, key="search")
	elif not state.loading and not state.error:
		st.info("Configure your filters above and click **Search** to find movies.")


with dashboard_tab:
	if st.button("Refresh dashboard") or 'dashboard' not in st.session_state:
		try:
			st.session_state['dashboard'] = parse_dashboard(client.get_dashboard_stats())
		except CatalogError as e:
			st.session_state['dashboard'] = None
			st.error(str(e))
	stats = st.session_state.get('dashboard')
	if stats is not None:
		m1, m2, m3 = st.columns(3)
		m1.metric("Total Movies", stats.total_movies)
		m2.metric("Total Reviews", stats.total_reviews)
		m3.metric("Avg Review Rating", stats.avg_rating)

		st.markdown("### Movies by Genre")
		for g in stats.movies_by_genre:
			st.progress(g.count / stats.max_genre_count, text=f"{g.label}: {g.count}" + (f" · ★ {g.avg_rating}" if g.avg_rating > 0 else ''))

		st.markdown("### Top 5 Highest Rated")
		for i, movie in enumerate(stats.top_rated, start=1):
			st.write(f"#{i} {movie.title} ({movie.year}) · {movie.rating}")
		st.markdown("### Most Reviewed")
		for i, movie in enumerate(stats.most_reviewed, start=1):
			st.write(f"#{i} {movie.title} · {movie.review_count} review{'s' if movie.review_count != 1 else ''}")
		st.markdown("### Recent Reviews")
		for review in stats.recent_reviews:
			st.write(f"**{review.author}** on *{review.movie_title or '?'}*: {review.comment or ''}")


with discover_tab:
	if st.button("Discover", type="primary"):
		try:
			st.session_state['discovered'] = parse_discovered(client.discover_movies(3))
		except CatalogError as e:
			st.error(str(e))
	for movie in st.session_state.get('discovered', []):
		with st.container(border=True):
			render_movie(movie)
			if movie.ai_enriched:
				st.markdown(f"**Anecdote:** {movie.ai_enriched.anecdote or '-'}")
				st.markdown(f"**Fun Fact:** {movie.ai_enriched.fun_fact or '-'}")
				st.markdown(f"**Why Watch It:** {movie.ai_enriched.pitch or '-'}")
			else:
				st.caption("AI insights unavailable for this movie")


# Show a footer indicator of current state
st.sidebar.markdown("---")  # separator
st.sidebar.caption(f"Catalog: {catalog.status.value} | Search: {search.status.value}")  # mode label
