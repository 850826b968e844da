"""
Comment submission for the GitLab AI Code Reviewer.

Each feedback item is posted as an inline diff discussion when it carries a
complete position, and as a general merge request discussion otherwise or when
GitLab rejects the inline attempt. The inline attempt is never retried.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import List, Dict, Any, Optional

import requests

from .config import ReviewConfig, PerformanceConfig
from .gitlab_client import GitLabClient, GitLabClientError
from .models import (
    FeedbackItem, MergeRequestDetails, PlatformPosition, SubmissionResult, SubmissionState
)
from .position_encoder import generate_line_code
from .utils import sanitize_text


logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (GitLabClientError, requests.exceptions.RequestException)


class CommentSubmissionError(Exception):
    """Raised when both the inline and the general comment could not be posted."""

    def __init__(self, message: str, cause: Optional[Exception] = None, fallback_cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause
        self.fallback_cause = fallback_cause


class CommentSubmitter:
    """Posts feedback items to a merge request."""

    def __init__(
        self,
        gitlab_client: GitLabClient,
        review_config: ReviewConfig,
        performance_config: Optional[PerformanceConfig] = None
    ):
        self.gitlab_client = gitlab_client
        self.review_config = review_config
        self.performance_config = performance_config or PerformanceConfig()

    def format_comment_body(self, feedback: FeedbackItem) -> str:
        """Markdown body shared by inline and general comments."""
        prefix = f"{self.review_config.comment_prefix} " if self.review_config.comment_prefix else ""
        heading = f"**{prefix}{feedback.severity.value}: {sanitize_text(feedback.title)}**"
        description = sanitize_text(feedback.description)
        return f"{heading}\n\n{description}" if description else heading

    def format_location(self, feedback: FeedbackItem, line_code: Optional[str], web_url: str) -> str:
        """File/line reference heading a general comment, linked to the diff when possible."""
        if isinstance(feedback.line_number, int) and feedback.line_number > 0:
            label = f"{feedback.file_path} (line {feedback.line_number})"
        else:
            label = feedback.file_path

        if self.review_config.include_deep_links and line_code and web_url:
            return f"📍 **File:** [{label}]({web_url.rstrip('/')}/diffs#{line_code})"
        return f"📍 **File:** `{label}`"

    def _line_code_for(self, feedback: FeedbackItem, mr_details: MergeRequestDetails) -> Optional[str]:
        position = feedback.position
        if position is None or not position.has_line:
            return None
        if position.line_code:
            return position.line_code
        table = mr_details.coordinate_tables.get(feedback.file_path)
        return generate_line_code(position.new_path or feedback.file_path, position.old_line, position.new_line, table)

    def _post_inline(self, body: str, position: PlatformPosition, mr_details: MergeRequestDetails) -> Dict[str, Any]:
        payload = {"body": body, "position": position.to_payload()}
        return self.gitlab_client.create_discussion(mr_details.project_id, mr_details.mr_iid, payload)

    def _post_general(self, body: str, mr_details: MergeRequestDetails) -> Dict[str, Any]:
        return self.gitlab_client.create_discussion(mr_details.project_id, mr_details.mr_iid, {"body": body})

    def submit(
        self,
        feedback: FeedbackItem,
        mr_details: MergeRequestDetails,
        raise_on_failure: bool = False
    ) -> SubmissionResult:
        """Post one feedback item, falling back to a general comment.

        Args:
            feedback: Item to post
            mr_details: Target merge request (IDs, SHAs, web URL, tables)
            raise_on_failure: Raise CommentSubmissionError instead of returning
                a FAILED result when the fallback fails too

        Returns:
            SubmissionResult in state POSTED or FAILED
        """
        state = SubmissionState.START
        body = self.format_comment_body(feedback)
        line_code = self._line_code_for(feedback, mr_details)
        inline_error = None

        if feedback.position is not None and feedback.position.is_complete:
            state = SubmissionState.TRY_INLINE
            position = feedback.position
            if not position.line_code:
                position = replace(position, line_code=line_code)
            try:
                response = self._post_inline(body, position, mr_details)
                logger.debug(f"Posted inline comment on {feedback.file_path}:{feedback.line_number}")
                return SubmissionResult(
                    feedback=replace(feedback, position=position),
                    state=SubmissionState.POSTED,
                    posted_inline=True,
                    line_code=line_code,
                    response=response
                )
            except TRANSPORT_ERRORS as e:
                inline_error = e
                logger.warning(
                    f"Inline comment rejected for {feedback.file_path}:{feedback.line_number}, "
                    f"posting as general comment: {str(e)}"
                )
        else:
            logger.debug(f"No complete position for {feedback.file_path}:{feedback.line_number}; posting general comment")

        state = SubmissionState.FALLBACK_GENERAL
        general_body = f"{self.format_location(feedback, line_code, mr_details.web_url)}\n\n{body}"
        try:
            response = self._post_general(general_body, mr_details)
            state = SubmissionState.POSTED
            return SubmissionResult(
                feedback=feedback,
                state=state,
                posted_inline=False,
                line_code=line_code,
                response=response,
                error=inline_error
            )
        except TRANSPORT_ERRORS as e:
            state = SubmissionState.FAILED
            logger.error(f"Failed to post comment for {feedback.file_path}:{feedback.line_number}: {str(e)}")
            if raise_on_failure:
                raise CommentSubmissionError(
                    f"Could not post comment for {feedback.file_path}:{feedback.line_number}",
                    cause=inline_error,
                    fallback_cause=e
                ) from e
            return SubmissionResult(
                feedback=feedback,
                state=state,
                line_code=line_code,
                error=inline_error,
                fallback_error=e
            )

    def submit_all(self, feedback: List[FeedbackItem], mr_details: MergeRequestDetails) -> List[SubmissionResult]:
        """Post many items concurrently; results keep the input order."""
        if not feedback:
            return []

        max_workers = min(self.performance_config.max_concurrent_comments, len(feedback))
        logger.info(f"Posting {len(feedback)} comment(s) with up to {max_workers} in parallel")

        results: List[Optional[SubmissionResult]] = [None] * len(feedback)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(self.submit, item, mr_details): index
                for index, item in enumerate(feedback)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    logger.error(f"Unexpected error posting comment for {feedback[index].file_path}: {str(e)}")
                    results[index] = SubmissionResult(
                        feedback=feedback[index],
                        state=SubmissionState.FAILED,
                        fallback_error=e
                    )
        return results
