"""
Review publisher for the GitLab AI Code Reviewer.

This module contains the ReviewPublisher class that takes feedback produced by
an AI reviewer for a merge request, reconciles its line numbers with the diff
and posts it as GitLab discussions.
"""

import logging
import time
from dataclasses import replace
from typing import List, Dict, Any, Optional

from .comment_submitter import CommentSubmitter
from .config import Config
from .diff_parser import DiffParser
from .feedback_processor import FeedbackProcessor
from .gitlab_client import GitLabClient, GitLabClientError
from .models import (
    FeedbackItem, FileCoordinateTable, MergeRequestDetails, ProcessingStats, PublishResult
)
from .position_encoder import normalize_position


logger = logging.getLogger(__name__)


class ReviewPublisherError(Exception):
    """Base exception for review publisher errors."""
    pass


class ReviewPublisher:
    """Coordinates parsing, line reconciliation and comment submission."""

    def __init__(self, config: Config, gitlab_client: Optional[GitLabClient] = None):
        """Initialize the publisher with configuration.

        Args:
            config: Application configuration
            gitlab_client: Client to use instead of one built from ``config.gitlab``
        """
        self.config = config
        self.gitlab_client = gitlab_client or GitLabClient(config.gitlab)
        self.diff_parser = DiffParser()
        self.feedback_processor = FeedbackProcessor(config.review)
        self.comment_submitter = CommentSubmitter(self.gitlab_client, config.review, config.performance)
        self.stats: Optional[ProcessingStats] = None

        logger.info("Initialized ReviewPublisher with all components")

    def prepare(self, mr_details: MergeRequestDetails) -> Dict[str, FileCoordinateTable]:
        """Build the coordinate tables of a merge request if it has none yet."""
        if not mr_details.coordinate_tables:
            diff_text = mr_details.diff_text or GitLabClient.build_unified_diff(mr_details.file_diffs)
            mr_details.diff_text = diff_text
            mr_details.coordinate_tables = self.diff_parser.parse_diff(diff_text)
            logger.info(f"Built coordinate tables for {len(mr_details.coordinate_tables)} file(s)")
        return mr_details.coordinate_tables

    def attach_line_codes(self, feedback: List[FeedbackItem], tables: Dict[str, FileCoordinateTable]) -> List[FeedbackItem]:
        """Set the GitLab line code on every positioned item.

        The position keeps the line numbers it was given; those are what the
        inline request sends.
        """
        coded = []
        for item in feedback:
            if item.position is None or item.position.line_code:
                coded.append(item)
                continue
            normalized = normalize_position(item.position, item.file_path, tables.get(item.file_path))
            coded.append(replace(item, position=replace(item.position, line_code=normalized.line_code)))
        return coded

    def publish(self, mr_details: MergeRequestDetails, feedback: List[FeedbackItem]) -> PublishResult:
        """Reconcile and post AI feedback on a merge request.

        Args:
            mr_details: Target merge request, with diff text or file diffs
            feedback: Items as produced by the AI response parser

        Returns:
            PublishResult with one SubmissionResult per posted item
        """
        logger.info(f"=== Publishing {len(feedback or [])} feedback item(s) to !{mr_details.mr_iid} ===")
        self.stats = ProcessingStats(start_time=time.time(), feedback_received=len(feedback or []))

        tables = self.prepare(mr_details)
        accuracy = self.feedback_processor.get_accuracy_stats(feedback, tables)

        items = list(feedback or [])
        if self.config.review.drop_context_line_feedback:
            items = self.feedback_processor.filter_context_line_feedback(items, tables)
            logger.info(f"Kept {len(items)} of {len(feedback or [])} item(s) after dropping context-line feedback")

        items = self.feedback_processor.process_feedback(items, tables)
        items = self.feedback_processor.populate_positions(items, mr_details)
        items = self.attach_line_codes(items, tables)

        results = self.comment_submitter.submit_all(items, mr_details)

        for result in results:
            if not result.success:
                self.stats.failed += 1
            elif result.posted_inline:
                self.stats.posted_inline += 1
            else:
                self.stats.posted_general += 1
        self.stats.end_time = time.time()

        logger.info(
            f"✅ Published {self.stats.posted_inline} inline and {self.stats.posted_general} general "
            f"comment(s), {self.stats.failed} failed, in {self.stats.duration:.2f}s"
        )
        return PublishResult(mr_details=mr_details, results=results, accuracy=accuracy, stats=self.stats)

    def publish_for_url(self, mr_url: str, feedback: List[FeedbackItem]) -> PublishResult:
        """Fetch a merge request by URL and publish feedback on it."""
        try:
            mr_details = self.gitlab_client.get_merge_request(mr_url)
        except GitLabClientError as e:
            logger.error(f"Failed to fetch merge request {mr_url}: {str(e)}")
            raise ReviewPublisherError(f"Failed to fetch merge request: {str(e)}") from e
        return self.publish(mr_details, feedback)

    def get_statistics(self) -> Dict[str, Any]:
        """Get processing and parsing statistics."""
        processing = {}
        if self.stats is not None:
            processing = {
                'duration': self.stats.duration,
                'feedback_received': self.stats.feedback_received,
                'posted_inline': self.stats.posted_inline,
                'posted_general': self.stats.posted_general,
                'failed': self.stats.failed,
            }
        return {
            'processing': processing,
            'parsing': self.diff_parser.get_parsing_statistics()
        }

    def close(self):
        """Clean up resources."""
        self.gitlab_client.close()
        logger.debug("ReviewPublisher closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
