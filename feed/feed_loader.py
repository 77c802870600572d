"""Loader for the building calendar feed."""
import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

PRODUCTION_MODE = "production"
DEFAULT_FEED_URL = "https://optime.helsinki.fi/icalservice/Building/13"
DEFAULT_FEED_PATH = "building13.ics"


class FetchError(Exception):
    """Upstream feed answered with a non-200 status."""
    
    def __init__(self, status_code: int):
        super().__init__(f"non-200 code: {status_code}")
        self.status_code = status_code


class FeedLoader:
    """Reads raw ICS text from the remote feed or from a local file."""
    
    def __init__(
        self,
        mode: str,
        url: str = DEFAULT_FEED_URL,
        path: str = DEFAULT_FEED_PATH,
        timeout: Optional[float] = None
    ):
        """
        Initialize the feed loader.
        
        Args:
            mode: Runtime mode; "production" fetches from ``url``, anything
                else reads ``path``
            url: Remote ICS feed URL
            path: Local ICS file path
            timeout: HTTP request timeout in seconds (default: no timeout)
        """
        self.mode = mode
        self.url = url
        self.path = path
        self.timeout = timeout
    
    @property
    def is_remote(self) -> bool:
        return self.mode == PRODUCTION_MODE
    
    def load(self) -> str:
        """
        Load the raw calendar text.
        
        Returns:
            ICS document as string
            
        Raises:
            FetchError: If the remote feed does not answer 200
            OSError: If the local file cannot be read
        """
        if self.is_remote:
            logger.info("Production mode detected, fetching data from remote...")
            return self._fetch_remote()
        
        logger.info("Development mode detected, fetching data from disk...")
        return self._read_local()
    
    def _fetch_remote(self) -> str:
        """
        Fetch the feed with a single GET request.
        
        Returns:
            Response body as string
            
        Raises:
            FetchError: If the response status is not 200
            requests.RequestException: On connection level failures
        """
        logger.info(f"Fetching events from remote {self.url}, this may take a while...")
        response = requests.get(self.url, timeout=self.timeout)
        if response.status_code != 200:
            logger.error(f"Feed request failed with status {response.status_code}")
            raise FetchError(response.status_code)
        return response.text
    
    def _read_local(self) -> str:
        logger.info(f"Reading events from path: {self.path}...")
        with open(self.path, encoding='utf-8') as f:
            return f.read()
