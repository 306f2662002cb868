"""
Run an advanced movie search from the command line.

This script:
1) Builds an explicit-mode QueryCoordinator over GET /movies/search
2) Applies the filters given on the command line
3) Logs the requested page (or walks every page with --all-pages)

Usage:
    python -m scripts.search_cli --title matrix --year-min 1999
    python -m scripts.search_cli --director nolan --all-pages

Exit code is 1 when the last request ended in an error.
"""

import argparse  # command-line flags
import asyncio  # run the coordinator
import sys  # exit code

from loguru import logger  # console logging

from moviematch.api_client import CatalogClient, search_fetcher  # HTTP transport
from moviematch.config import API_URL, ITEMS_PER_PAGE, setup_logging  # settings
from moviematch.coordinator import QueryCoordinator  # query coordination
from moviematch.errors import ValidationError  # local rejections
from moviematch.models import CoordinatorState, SearchMode  # state snapshot
from moviematch.query_builder import SEARCH_FILTERS  # advanced search fields


def parse_args(argv=None) -> argparse.Namespace:
	parser = argparse.ArgumentParser(description="Advanced movie search against the catalog API")
	parser.add_argument('--title', default='')
	parser.add_argument('--director', default='')
	parser.add_argument('--genre', default='')
	parser.add_argument('--year-min', dest='yearMin', default='')
	parser.add_argument('--year-max', dest='yearMax', default='')
	parser.add_argument('--rating-min', dest='ratingMin', default='')
	parser.add_argument('--rating-max', dest='ratingMax', default='')
	parser.add_argument('--page', type=int, default=1, help="page to show (default 1)")
	parser.add_argument('--all-pages', action='store_true', help="walk every page of the result set")
	parser.add_argument('--api-url', default=API_URL)
	parser.add_argument('--page-size', type=int, default=ITEMS_PER_PAGE)
	parser.add_argument('--log-level', default=None)
	return parser.parse_args(argv)


def log_page(state: CoordinatorState) -> None:
	"""Print one committed page of results."""
	results = state.results
	if results is None:
		return
	logger.info(f"[CLI] Page {state.page}/{max(results.total_pages, 1)} | {results.total_count} match(es)")
	for i, movie in enumerate(results.items, start=(state.page - 1) * results.page_size + 1):
		logger.info(f"  {i}. {movie.title} ({movie.year}) | {movie.rating}/10 | {movie.director or '-'}")


async def run_search(args: argparse.Namespace) -> CoordinatorState:
	client = CatalogClient(base_url=args.api_url)
	coordinator = QueryCoordinator(
		search_fetcher(client),
		mode=SearchMode.EXPLICIT,
		schema=SEARCH_FILTERS,
		page_size=args.page_size,
	)
	try:
		for name in SEARCH_FILTERS.field_names:
			coordinator.update_draft(name, getattr(args, name))

		await coordinator.apply(page=1)
		tags = coordinator.active_filters()
		logger.info(f"[CLI] Filters applied: {', '.join(f'{k}={v}' for k, v in tags) or 'none'}")

		state = coordinator.state
		if state.error:
			return state

		if args.all_pages:
			log_page(state)
			while state.results is not None and state.page < state.total_pages:
				await coordinator.change_page(state.page + 1)
				state = coordinator.state
				if state.error:
					break
				log_page(state)
			return state

		if args.page != 1:
			try:
				await coordinator.change_page(args.page)
			except ValidationError as e:
				logger.error(f"[CLI] {e}")
				state.error = str(e)  # local snapshot only; reported through the exit code
				return state
		state = coordinator.state
		log_page(state)
		if state.results is not None and not state.results.has_pagination:
			logger.info("[CLI] Single page of results")
		return state
	finally:
		coordinator.close()


def main(argv=None) -> int:
	args = parse_args(argv)
	setup_logging(args.log_level)

	# Headline banner for visibility in console
	logger.info("=" * 60)
	logger.info("Movie Match - Advanced Search")
	logger.info("=" * 60)

	state = asyncio.run(run_search(args))
	if state.error:
		logger.error(f"[CLI] Search failed: {state.error}")
		return 1
	logger.info("=" * 60)
	return 0


if __name__ == '__main__':
	sys.exit(main())
