from __future__ import annotations

import logging
from urllib.parse import quote

import requests

from cpworker.core.builds import BuildClientError, BuildStatus

log = logging.getLogger(__name__)

DEFAULT_TRAVIS_URL = "https://api.travis-ci.org"
DEFAULT_TIMEOUT_SECONDS = 5.0


class TravisClient:
    """Adapter around the Travis CI v3 API."""

    def __init__(
        self,
        session: requests.Session | None = None,
        base_url: str = DEFAULT_TRAVIS_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Create a Travis client; the session is shared by all calls."""
        self.session = session or requests.Session()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _repo_url(self, owner: str, repo: str) -> str:
        """Return the API url of a repository (slug is `owner%2Frepo`)."""
        slug = quote(f"{owner}/{repo}", safe="")
        return f"{self.base_url}/repo/{slug}"

    @staticmethod
    def _headers(token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Travis-API-Version": "3",
            "Authorization": f"token {token}",
        }

    def _call(self, method: str, url: str, token: str, payload=None) -> dict:
        """Issue one request and return the decoded JSON body."""
        try:
            resp = self.session.request(
                method,
                url,
                json=payload,
                headers=self._headers(token),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            body = resp.json()
        except requests.RequestException as exc:
            raise BuildClientError(f"Travis request {method} {url} failed: {exc}") from exc
        except ValueError as exc:
            raise BuildClientError(f"Travis returned invalid JSON for {url}") from exc
        if not isinstance(body, dict):
            raise BuildClientError(f"Unexpected Travis response for {url}")
        return body

    def submit_build(self, owner: str, repo: str, branch: str, token: str) -> str:
        """Request a build of a branch and return the Travis request id."""
        url = f"{self._repo_url(owner, repo)}/requests"
        body = self._call("POST", url, token, {"request": {"branch": branch}})
        try:
            request_id = body["request"]["id"]
        except (KeyError, TypeError) as exc:
            raise BuildClientError("Travis response has no request id") from exc
        log.debug("Submitted Travis request %s for %s/%s@%s", request_id, owner, repo, branch)
        return str(request_id)

    def get_status(
        self, owner: str, repo: str, request_id: str, token: str
    ) -> BuildStatus:
        """Return the status of the first build created by a request."""
        log.debug("Fetching build status for request '%s'", request_id)
        url = f"{self._repo_url(owner, repo)}/request/{request_id}"
        body = self._call("GET", url, token)

        builds = body.get("builds") or []
        if not isinstance(builds, list):
            raise BuildClientError(f"malformed builds in request '{request_id}'")
        if not builds:
            raise BuildClientError(f"no builds found for request '{request_id}'")

        # Only the most recent build of a request is considered.
        first = builds[0]
        try:
            return BuildStatus(
                build_id=str(first["id"]),
                state=str(first["state"]),
                previous_state=first.get("previous_state"),
            )
        except (KeyError, TypeError) as exc:
            raise BuildClientError(f"malformed build in request '{request_id}'") from exc
