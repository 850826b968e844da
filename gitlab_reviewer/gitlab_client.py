"""
GitLab API client for the GitLab AI Code Reviewer.

This module handles the GitLab REST API interactions: resolving a merge request
URL, fetching merge request details, versions and diffs, and creating
discussions, with retry logic for transient network failures.
"""

import logging
import re
from typing import List, Dict, Any, Optional, Tuple
from urllib.parse import quote, urlparse

import requests
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from .config import GitLabConfig
from .models import FileDiff, MergeRequestDetails
from .utils import DEV_NULL


logger = logging.getLogger(__name__)

MR_PATH_SEGMENT = "/-/merge_requests/"
DIFF_CONTEXT_LINES = 20


class GitLabClientError(Exception):
    """Base exception for GitLab client errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(GitLabClientError):
    """Exception raised when the GitLab token is rejected."""
    pass


class MergeRequestNotFoundError(GitLabClientError):
    """Exception raised when a project or merge request is not found."""
    pass


class RateLimitError(GitLabClientError):
    """Exception raised when the GitLab API rate limit is exceeded."""
    pass


class InvalidMergeRequestUrlError(GitLabClientError):
    """Exception raised when a merge request URL cannot be parsed."""
    pass


def parse_mr_url(mr_url: str, base_url: str) -> Tuple[str, int]:
    """Split a merge request URL into project path and IID.

    Args:
        mr_url: e.g. ``https://gitlab.com/group/project/-/merge_requests/42``
        base_url: URL of the configured GitLab instance

    Returns:
        Tuple of (project path, merge request IID)

    Raises:
        InvalidMergeRequestUrlError: If the URL is malformed or points at
            another GitLab instance
    """
    if not mr_url or not isinstance(mr_url, str):
        raise InvalidMergeRequestUrlError("Merge request URL is required")

    url = urlparse(mr_url.strip())
    base = urlparse(base_url or "")
    if not url.scheme or not url.hostname:
        raise InvalidMergeRequestUrlError(f"Invalid merge request URL: {mr_url}")
    if url.hostname != base.hostname:
        raise InvalidMergeRequestUrlError(
            "Merge request URL hostname does not match the configured GitLab instance hostname"
        )

    path = url.path
    index = path.find(MR_PATH_SEGMENT)
    if index == -1:
        raise InvalidMergeRequestUrlError(f"Could not find '{MR_PATH_SEGMENT}' in the URL path")

    iid_match = re.match(r'^(\d+)', path[index + len(MR_PATH_SEGMENT):])
    if not iid_match:
        raise InvalidMergeRequestUrlError("Could not parse merge request IID from the URL")

    # Instances served under a relative root carry it before the project path
    prefix = base.path.rstrip('/')
    project_path = path[:index]
    if prefix and project_path.startswith(prefix + '/'):
        project_path = project_path[len(prefix):]
    project_path = project_path.strip('/')
    if not project_path:
        raise InvalidMergeRequestUrlError("Could not parse project path from the URL")

    return project_path, int(iid_match.group(1))


class GitLabClient:
    """GitLab API client with retry logic and error mapping."""

    def __init__(self, config: GitLabConfig):
        """Initialize GitLab client with configuration."""
        self.config = config
        self._session = requests.Session()
        self._session.headers.update({
            'PRIVATE-TOKEN': config.token,
            'User-Agent': 'GitLab-AI-Code-Reviewer/1.0',
            'Accept': 'application/json'
        })
        self._retrying = Retrying(
            stop=stop_after_attempt(config.max_retries),
            wait=wait_exponential(multiplier=1, min=config.retry_delay_min, max=config.retry_delay_max),
            retry=retry_if_exception_type((requests.exceptions.ConnectionError, requests.exceptions.Timeout)),
            reraise=True
        )

        logger.info(f"Initialized GitLab client for {config.url}")

    def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request, retrying transient failures, and decode the JSON body."""
        url = f"{self.config.api_base_url}{path}"
        logger.debug(f"GitLab API request: {method} {url}")

        try:
            response = self._retrying(
                self._session.request, method, url, timeout=self.config.timeout, **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"GitLab API request failed: {method} {path}: {str(e)}")
            raise GitLabClientError(f"Request to {path} failed: {str(e)}") from e

        self._raise_for_status(response, path)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GitLabClientError(f"Invalid JSON in response from {path}", response.status_code) from e

    @staticmethod
    def _raise_for_status(response: requests.Response, path: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        text = response.text or ""
        logger.debug(f"Response content: {text[:500]}")
        if status == 401:
            raise AuthenticationError("GitLab authentication failed - check GITLAB_TOKEN", status)
        if status == 404:
            raise MergeRequestNotFoundError(f"GitLab resource not found: {path}", status)
        if status == 429 or (status == 403 and "rate limit" in text.lower()):
            raise RateLimitError("GitLab API rate limit exceeded", status)
        if status == 403:
            raise GitLabClientError("Access forbidden - check GitLab token permissions", status)
        raise GitLabClientError(f"GitLab API error {status} for {path}: {text[:200]}", status)

    def _merge_request_path(self, project: Any, mr_iid: int) -> str:
        return f"/projects/{quote(str(project), safe='')}/merge_requests/{mr_iid}"

    def get_merge_request(self, mr_url: str) -> MergeRequestDetails:
        """Fetch everything needed to review and comment on a merge request.

        Args:
            mr_url: Web URL of the merge request

        Returns:
            MergeRequestDetails with the latest version SHAs and file diffs
        """
        project_path, mr_iid = parse_mr_url(mr_url, self.config.url)
        logger.info(f"Fetching merge request !{mr_iid} in {project_path}")

        base_path = self._merge_request_path(project_path, mr_iid)
        mr = self._request("GET", base_path)
        versions = self._request("GET", f"{base_path}/versions") or []
        if not versions:
            raise GitLabClientError("Could not retrieve merge request version details")
        latest_version = versions[0]

        file_diffs = [self._to_file_diff(item) for item in self._get_diffs(base_path)]
        diff_text = self.build_unified_diff(file_diffs)

        details = MergeRequestDetails(
            project_id=mr.get("project_id", project_path),
            mr_iid=mr_iid,
            base_sha=latest_version.get("base_commit_sha", ""),
            start_sha=latest_version.get("start_commit_sha", ""),
            head_sha=latest_version.get("head_commit_sha", ""),
            web_url=mr.get("web_url", ""),
            project_path=project_path,
            title=mr.get("title", ""),
            source_branch=mr.get("source_branch", ""),
            target_branch=mr.get("target_branch", ""),
            file_diffs=file_diffs,
            diff_text=diff_text
        )
        logger.info(f"Retrieved merge request '{details.title}' with {len(file_diffs)} changed file(s)")
        return details

    def _get_diffs(self, base_path: str) -> List[Dict[str, Any]]:
        try:
            return self._request("GET", f"{base_path}/diffs", params={"context_lines": DIFF_CONTEXT_LINES}) or []
        except (AuthenticationError, MergeRequestNotFoundError):
            raise
        except GitLabClientError as e:
            logger.warning(f"Failed to fetch diffs with extended context, falling back to default context: {str(e)}")
            return self._request("GET", f"{base_path}/diffs") or []

    @staticmethod
    def _to_file_diff(item: Dict[str, Any]) -> FileDiff:
        return FileDiff(
            old_path=item.get("old_path", ""),
            new_path=item.get("new_path", ""),
            diff=item.get("diff", "") or "",
            new_file=bool(item.get("new_file", False)),
            deleted_file=bool(item.get("deleted_file", False)),
            renamed_file=bool(item.get("renamed_file", False))
        )

    @staticmethod
    def build_unified_diff(file_diffs: List[FileDiff]) -> str:
        """Join GitLab per-file hunks into one unified diff with file headers."""
        parts = []
        for file_diff in file_diffs:
            if not file_diff.diff:
                continue
            old_header = DEV_NULL if file_diff.new_file else f"a/{file_diff.old_path}"
            new_header = DEV_NULL if file_diff.deleted_file else f"b/{file_diff.new_path}"
            body = file_diff.diff if file_diff.diff.endswith('\n') else file_diff.diff + '\n'
            mode_line = ""
            if file_diff.new_file:
                mode_line = "new file mode 100644\n"
            elif file_diff.deleted_file:
                mode_line = "deleted file mode 100644\n"
            parts.append(
                f"diff --git a/{file_diff.old_path} b/{file_diff.new_path}\n"
                f"{mode_line}"
                f"--- {old_header}\n"
                f"+++ {new_header}\n"
                f"{body}"
            )
        return "".join(parts)

    def create_discussion(self, project_id: Any, mr_iid: int, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a merge request discussion.

        Args:
            project_id: Numeric project ID or full project path
            mr_iid: Merge request IID
            payload: ``{"body": ...}`` optionally with a ``position`` object

        Returns:
            The created discussion as returned by GitLab
        """
        path = f"{self._merge_request_path(project_id, mr_iid)}/discussions"
        kind = "inline" if "position" in payload else "general"
        logger.debug(f"Creating {kind} discussion on !{mr_iid}")
        return self._request("POST", path, json=payload) or {}

    def close(self):
        """Clean up resources."""
        self._session.close()
        logger.debug("GitLab client closed")
