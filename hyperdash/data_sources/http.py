"""
Shared HTTP session with automatic retry and backoff.

Retries on transient network errors (429/502/503/504) with exponential
backoff. Retrying is a source-adapter concern only; the analytics never
retry anything.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


DEFAULT_RETRY = Retry(
    total=3,
    backoff_factor=1,
    status_forcelist=[429, 502, 503, 504],
    allowed_methods=["GET", "HEAD"],
    raise_on_status=False,  # let resp.raise_for_status() handle it
)

DEFAULT_TIMEOUT = 30.0  # seconds

USER_AGENT = "hyperdash/0.1 (+https://localhost)"


def create_session(retry: Retry = None) -> requests.Session:
    """
    Build a requests.Session with the retry adapter mounted.

    Args:
        retry: Custom retry strategy (defaults to DEFAULT_RETRY)

    Returns:
        Configured session
    """
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry or DEFAULT_RETRY)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update({
        "User-Agent": USER_AGENT,
        "Accept": "application/json",
    })
    return session


session: requests.Session = create_session()
