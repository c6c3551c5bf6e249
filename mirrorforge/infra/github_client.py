"""
GitHub API client infrastructure for mirrorforge.

Provides a clean abstraction over GitHub API access:
- Lists an account's public repositories page by page
- Uses a token when configured
- Handles rate limiting with exponential backoff
"""

import os
import time
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..domain import Account, AccountKind

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com"
PAGE_SIZE = 100


@dataclass
class RateLimitStatus:
    """GitHub API rate limit status."""
    remaining: int
    limit: int
    reset_time: int  # Unix timestamp
    used: int

    @property
    def minutes_until_reset(self) -> int:
        """Minutes until rate limit resets."""
        now = int(time.time())
        return max(0, (self.reset_time - now) // 60)

    @property
    def is_low(self) -> bool:
        """Check if rate limit is getting low (< 100 remaining)."""
        return self.remaining < 100


class GitHubClient:
    """
    GitHub API client with rate limiting.

    Example:
        client = GitHubClient()
        names = client.list_public_repos(Account("Icinga", AccountKind.ORG))
        if names is not None:
            print(f"{len(names)} repositories")
    """

    def __init__(
        self,
        token: Optional[str] = None,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize GitHubClient.

        Args:
            token: GitHub token (defaults to MIRRORFORGE_GITHUB_TOKEN or GITHUB_TOKEN env var)
            max_retries: Maximum retry attempts for rate-limited requests
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay between retries
            session: requests session to use (a new one by default)
        """
        self.token = token or os.environ.get('MIRRORFORGE_GITHUB_TOKEN') or os.environ.get('GITHUB_TOKEN')
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.session = session or requests.Session()
        self._rate_limit_status: Optional[RateLimitStatus] = None

    def _update_rate_limit_from_headers(self, headers: Dict[str, str]) -> None:
        """Update rate limit status from response headers."""
        try:
            remaining = int(headers.get('X-RateLimit-Remaining', -1))
            limit = int(headers.get('X-RateLimit-Limit', -1))
            reset_time = int(headers.get('X-RateLimit-Reset', 0))
            used = int(headers.get('X-RateLimit-Used', 0))
        except (ValueError, TypeError):
            return

        if remaining >= 0 and limit >= 0:
            self._rate_limit_status = RateLimitStatus(
                remaining=remaining,
                limit=limit,
                reset_time=reset_time,
                used=used
            )

            if self._rate_limit_status.is_low:
                logger.warning(
                    f"GitHub API rate limit low: {remaining}/{limit} remaining, "
                    f"resets in {self._rate_limit_status.minutes_until_reset} minutes"
                )

    @property
    def rate_limit_status(self) -> Optional[RateLimitStatus]:
        """Rate limit status from the last API response, if any."""
        return self._rate_limit_status

    def _api(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """
        GET an API endpoint.

        Returns:
            Decoded JSON, or None on any failure
        """
        url = f"{API_URL}/{endpoint}"
        headers = {
            'Accept': 'application/vnd.github.v3+json',
            'User-Agent': 'mirrorforge'
        }

        if self.token:
            headers['Authorization'] = f'token {self.token}'

        for attempt in range(self.max_retries):
            try:
                response = self.session.get(url, headers=headers, params=params, timeout=30)
            except requests.RequestException as e:
                logger.warning(f"GitHub API request failed for {endpoint}: {e}")
                if attempt < self.max_retries - 1:
                    time.sleep(min(self.base_delay * (2 ** attempt), self.max_delay))
                continue

            self._update_rate_limit_from_headers(response.headers)

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    logger.error(f"GitHub API returned malformed JSON for {endpoint}: {e}")
                    return None

            if response.status_code in (403, 429):
                reset_time = response.headers.get('X-RateLimit-Reset')
                if reset_time and reset_time.isdigit():
                    wait_time = int(reset_time) - int(time.time())
                    if 0 < wait_time < self.max_delay:
                        logger.info(f"Rate limited, waiting {wait_time}s")
                        time.sleep(wait_time)
                        continue

                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                logger.info(f"Rate limited, waiting {delay}s (attempt {attempt + 1})")
                time.sleep(delay)
                continue

            logger.error(f"GitHub API error {response.status_code} for {endpoint}")
            return None

        logger.error(f"GitHub API gave up on {endpoint} after {self.max_retries} attempts")
        return None

    def list_public_repos(self, account: Account) -> Optional[List[str]]:
        """
        List the names of an account's public repositories.

        Pages through the listing until a short page arrives.

        Args:
            account: User or organization

        Returns:
            Sorted repository names, or None if any page failed
        """
        if account.kind == AccountKind.ORG:
            endpoint = f"orgs/{account.name}/repos"
        else:
            endpoint = f"users/{account.name}/repos"

        names: List[str] = []
        page = 1

        while True:
            data = self._api(endpoint, {'type': 'public', 'per_page': PAGE_SIZE, 'page': page})
            if not isinstance(data, list):
                logger.error(f"Couldn't fetch repos of GitHub {account.kind.value} {account.name}")
                return None

            names.extend(repo['name'] for repo in data if isinstance(repo, dict) and repo.get('name'))

            if len(data) < PAGE_SIZE:
                break
            page += 1

        return sorted(names)
