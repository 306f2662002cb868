"""
Configuration module.
Reads runtime settings from environment variables with safe defaults,
and sets up console logging for the UI and scripts.
"""

import os  # environment-based settings
import sys  # stderr sink for logging
from typing import Optional  # optional override arguments

from loguru import logger  # console logging


def _env_int(name: str, default: int) -> int:
	"""Read an integer from the environment, falling back to the default when invalid."""
	raw = os.environ.get(name)  # raw string or None
	if raw is None or raw.strip() == '':
		return default  # not configured
	try:
		return int(raw)  # parse
	except ValueError:
		logger.warning(f"[Config] Ignoring invalid {name}={raw!r}; using {default}")
		return default


def _env_float(name: str, default: float) -> float:
	"""Read a float from the environment, falling back to the default when invalid."""
	raw = os.environ.get(name)
	if raw is None or raw.strip() == '':
		return default
	try:
		return float(raw)
	except ValueError:
		logger.warning(f"[Config] Ignoring invalid {name}={raw!r}; using {default}")
		return default


# Base URL of the catalog REST API (no trailing slash)
API_URL: str = os.environ.get('MOVIEMATCH_API_URL', 'http://localhost:3000/api').rstrip('/')

# Number of movies requested per page for both the catalog list and the advanced search
ITEMS_PER_PAGE: int = _env_int('MOVIEMATCH_PAGE_SIZE', 10)

# Quiet period before a reactive filter change triggers a fetch
DEBOUNCE_MS: int = _env_int('MOVIEMATCH_DEBOUNCE_MS', 300)

# Per-request timeout handed to the HTTP transport
REQUEST_TIMEOUT_S: float = _env_float('MOVIEMATCH_TIMEOUT_S', 10.0)

# Minimum level printed by the console logger
LOG_LEVEL: str = os.environ.get('MOVIEMATCH_LOG_LEVEL', 'INFO').upper()


def setup_logging(level: Optional[str] = None) -> None:
	"""Replace loguru's default sink with a single stderr sink at the requested level."""
	logger.remove()  # drop default handler so levels are not duplicated
	logger.add(sys.stderr, level=(level or LOG_LEVEL).upper())  # single console sink
	logger.debug(f"[Config] Logging ready | api={API_URL} page_size={ITEMS_PER_PAGE} debounce_ms={DEBOUNCE_MS}")
