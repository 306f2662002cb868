"""
Error taxonomy for the catalog client and query coordination layer.
Every error is terminal to the current request only, never to a coordinator.
"""

from typing import Optional


class CatalogError(Exception):
	"""Base class; the string form is the message shown to the user."""

	def __init__(self, message: str):
		super().__init__(message)
		self.message = message

	def __str__(self) -> str:
		return self.message


class NetworkError(CatalogError):
	"""The API could not be reached (connection refused, DNS, timeout, reset)."""


class ApiError(CatalogError):
	"""The API answered, but with success=false or a body we could not understand."""

	def __init__(self, message: str, status_code: Optional[int] = None):
		super().__init__(message)
		self.status_code = status_code


class ValidationError(CatalogError):
	"""Rejected locally before any network call (e.g. page out of range)."""
