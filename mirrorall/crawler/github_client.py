"""GitHub API client for repository discovery."""

import logging

import httpx
from rich.console import Console

from ..errors import ApiError, AuthError, NetworkError
from .models import RepositoryDescriptor

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_PAGE_SIZE = 50


def build_listing_url(
    api_url: str,
    organisation: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> str:
    """Build the repository listing URL for an organisation or the user."""
    base = api_url.rstrip("/")
    if organisation:
        return f"{base}/orgs/{organisation}/repos?type=all&per_page={page_size}"
    return f"{base}/user/repos?affiliation=owner&per_page={page_size}"


class RepositoryLister:
    """Lists every repository owned by a user or organisation.

    Pages are requested one after another until the endpoint answers with an
    empty array. Usage::

        with RepositoryLister(api_url, "octocat", token, organisation="acme") as lister:
            repos = lister.list_all()
    """

    def __init__(
        self,
        api_url: str,
        identity: str,
        secret: str,
        organisation: str | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        client: httpx.Client | None = None,
        timeout: float = 30.0,
    ):
        self.organisation = organisation
        self.url = build_listing_url(api_url, organisation, page_size)
        self._auth = httpx.BasicAuth(identity, secret)
        self._owns_client = client is None
        self.client = client or httpx.Client(
            headers={"Accept": "application/vnd.github+json"},
            timeout=timeout,
        )

    def __enter__(self) -> "RepositoryLister":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def fetch_page(self, page: int) -> list[dict]:
        """Fetch one page of the listing and return its raw objects."""
        url = f"{self.url}&page={page}"
        logger.debug("GET %s", url)

        try:
            response = self.client.get(url, auth=self._auth)
        except httpx.TransportError as e:
            raise NetworkError(f"Could not reach {self.url}: {e}") from e

        if response.status_code in (401, 403):
            raise AuthError(response.status_code)
        if not response.is_success:
            raise ApiError(
                f"Listing failed with HTTP {response.status_code} on page {page}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON on page {page}: {e}") from e

        if not isinstance(data, list) or not all(isinstance(i, dict) for i in data):
            raise ApiError(f"Expected a JSON array of repositories on page {page}")
        return data

    def list_all(self) -> list[RepositoryDescriptor]:
        """Discover all repositories visible to the account."""
        target = self.organisation or "user"
        console.print(f"[blue]Discovering repositories for {target}...[/blue]")

        repos: list[RepositoryDescriptor] = []
        page = 1
        while True:
            items = self.fetch_page(page)
            if not items:
                break
            for item in items:
                try:
                    repos.append(RepositoryDescriptor.from_payload(item))
                except KeyError as e:
                    raise ApiError(f"Repository entry on page {page} lacks {e}") from e
                except (TypeError, ValueError) as e:
                    raise ApiError(f"Malformed repository entry on page {page}: {e}") from e
            page += 1

        logger.debug("Listing finished after %d requests", page)
        return repos
