"""
Unit tests for the query builder: normalization, ordering and fingerprints.
Run: python tests/test_query_builder.py
"""

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
	sys.path.insert(0, str(ROOT))

from moviematch.query_builder import (
	CATALOG_FILTERS,
	NO_SELECTION,
	SEARCH_FILTERS,
	active_filter_tags,
	build_params,
	default_draft,
	fingerprint,
)


def assert_equal(actual, expected, msg):
	if actual != expected:
		raise AssertionError(f"{msg} | expected={expected}, actual={actual}")


def assert_true(cond, msg):
	if not cond:
		raise AssertionError(msg)


def test_empty_values_dropped():
	params = build_params({'title': '', 'director': None, 'genre': NO_SELECTION, 'yearMin': 1999}, SEARCH_FILTERS)
	assert_equal(params, [('yearMin', '1999')], "empty, None and no-selection omitted")


def test_declaration_order_is_kept():
	params = build_params({'ratingMax': '9', 'title': 'matrix', 'genre': 'sci-fi'}, SEARCH_FILTERS)
	assert_equal([k for k, _ in params], ['title', 'genre', 'ratingMax'], "schema order, not insertion order")


def test_insertion_order_does_not_matter():
	a = {'title': 'matrix', 'yearMin': '1999', 'director': 'wachowski'}
	b = {'director': 'wachowski', 'yearMin': '1999', 'title': 'matrix'}
	assert_equal(build_params(a, SEARCH_FILTERS), build_params(b, SEARCH_FILTERS), "same normalized sequence")
	assert_equal(fingerprint(a, 1, SEARCH_FILTERS), fingerprint(b, 1, SEARCH_FILTERS), "fingerprints equal")
	assert_equal(hash(fingerprint(a, 1, SEARCH_FILTERS)), hash(fingerprint(b, 1, SEARCH_FILTERS)), "hashes equal")


def test_undeclared_keys_sorted_after_declared():
	a = {'zeta': '1', 'alpha': '2', 'title': 'x'}
	b = {'alpha': '2', 'title': 'x', 'zeta': '1'}
	assert_equal(build_params(a, SEARCH_FILTERS), [('title', 'x'), ('alpha', '2'), ('zeta', '1')], "extras sorted")
	assert_equal(build_params(a), build_params(b), "no schema: still deterministic")


def test_range_bounds_are_independent():
	assert_equal(build_params({'yearMin': '1990'}, SEARCH_FILTERS), [('yearMin', '1990')], "min alone")
	assert_equal(build_params({'ratingMax': '7.5'}, SEARCH_FILTERS), [('ratingMax', '7.5')], "max alone")


def test_values_stringified_and_whitespace_kept():
	params = build_params({'director': 'Nolan ', 'yearMin': 1999, 'ratingMin': 8.0}, SEARCH_FILTERS)
	assert_equal(params, [('director', 'Nolan '), ('yearMin', '1999'), ('ratingMin', '8')], "stringified")


def test_page_and_limit_appended_last():
	params = build_params({'genre': 'drama'}, CATALOG_FILTERS, page=2, limit=10)
	assert_equal(params[-2:], [('page', '2'), ('limit', '10')], "page and limit last")


def test_fingerprint_includes_page():
	f = {'title': 'matrix'}
	assert_true(fingerprint(f, 1, SEARCH_FILTERS) != fingerprint(f, 2, SEARCH_FILTERS), "page distinguishes requests")
	assert_equal(fingerprint({'genre': ''}, 1, SEARCH_FILTERS), fingerprint({}, 1, SEARCH_FILTERS), "empty == missing")


def test_default_drafts():
	assert_equal(default_draft(CATALOG_FILTERS)['order'], 'desc', "catalog orders descending by default")
	d1 = default_draft(SEARCH_FILTERS)
	d1['title'] = 'changed'
	assert_equal(default_draft(SEARCH_FILTERS)['title'], '', "each draft is a fresh dict")


def test_active_filter_tags():
	tags = active_filter_tags(
		{'title': 'matrix', 'genre': 'sci-fi', 'yearMin': '1999', 'ratingMin': '7', 'ratingMax': '9'},
		genre_labels={'sci-fi': 'Science Fiction'},
	)
	assert_equal(tags, [
		('Title', '"matrix"'),
		('Genre', 'Science Fiction'),
		('Year', '1999+'),
		('Rating', '7-9'),
	], "tags in display order")
	assert_equal(active_filter_tags({'yearMax': '2000'}), [('Year', 'up to 2000')], "upper bound only")
	assert_equal(active_filter_tags(None), [], "no snapshot, no tags")


def main():
	print("Running query builder tests...")
	test_empty_values_dropped()
	test_declaration_order_is_kept()
	test_insertion_order_does_not_matter()
	test_undeclared_keys_sorted_after_declared()
	test_range_bounds_are_independent()
	test_values_stringified_and_whitespace_kept()
	test_page_and_limit_appended_last()
	test_fingerprint_includes_page()
	test_default_drafts()
	test_active_filter_tags()
	print("All query builder tests passed!")


if __name__ == '__main__':
	main()
