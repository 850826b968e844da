"""
GitLab AI Code Reviewer Package

Reconciles line numbers produced by an AI code reviewer with merge request
diffs and posts the feedback as GitLab discussions, inline where possible.
"""

__version__ = "1.0.0"
__author__ = "gitlab-ai-code-reviewer contributors"
__description__ = "Diff coordinate reconciliation and comment posting for AI reviews of GitLab merge requests"

# Submodules are imported on first attribute access so that the pure parsing
# and validation modules can be used without importing `requests`.

__all__ = [
    # Main classes
    'Config', 'ReviewPublisher', 'ReviewPublisherError',
    # Data models
    'FeedbackItem', 'Severity', 'FileCoordinateTable', 'DiffLineEntry', 'ChangeKind',
    'PlatformPosition', 'Valid', 'CorrectedTo', 'UnresolvedWarning', 'OutsideDiffPolicy',
    'MergeRequestDetails', 'SubmissionResult', 'SubmissionState', 'PublishResult',
    # Components
    'DiffParser', 'DiffParsingError', 'FeedbackProcessor', 'validate_line_number',
    'generate_line_code', 'normalize_position', 'CommentSubmitter', 'CommentSubmissionError',
    'GitLabClient', 'GitLabClientError',
]

# Lazy import map: attribute -> (module_path, attr_name)
_lazy_exports = {
    # Main classes
    'Config': ('gitlab_reviewer.config', 'Config'),
    'ReviewPublisher': ('gitlab_reviewer.review_publisher', 'ReviewPublisher'),
    'ReviewPublisherError': ('gitlab_reviewer.review_publisher', 'ReviewPublisherError'),
    # Models
    'FeedbackItem': ('gitlab_reviewer.models', 'FeedbackItem'),
    'Severity': ('gitlab_reviewer.models', 'Severity'),
    'FileCoordinateTable': ('gitlab_reviewer.models', 'FileCoordinateTable'),
    'DiffLineEntry': ('gitlab_reviewer.models', 'DiffLineEntry'),
    'ChangeKind': ('gitlab_reviewer.models', 'ChangeKind'),
    'PlatformPosition': ('gitlab_reviewer.models', 'PlatformPosition'),
    'Valid': ('gitlab_reviewer.models', 'Valid'),
    'CorrectedTo': ('gitlab_reviewer.models', 'CorrectedTo'),
    'UnresolvedWarning': ('gitlab_reviewer.models', 'UnresolvedWarning'),
    'OutsideDiffPolicy': ('gitlab_reviewer.models', 'OutsideDiffPolicy'),
    'MergeRequestDetails': ('gitlab_reviewer.models', 'MergeRequestDetails'),
    'SubmissionResult': ('gitlab_reviewer.models', 'SubmissionResult'),
    'SubmissionState': ('gitlab_reviewer.models', 'SubmissionState'),
    'PublishResult': ('gitlab_reviewer.models', 'PublishResult'),
    # Components
    'DiffParser': ('gitlab_reviewer.diff_parser', 'DiffParser'),
    'DiffParsingError': ('gitlab_reviewer.diff_parser', 'DiffParsingError'),
    'FeedbackProcessor': ('gitlab_reviewer.feedback_processor', 'FeedbackProcessor'),
    'validate_line_number': ('gitlab_reviewer.line_validator', 'validate_line_number'),
    'generate_line_code': ('gitlab_reviewer.position_encoder', 'generate_line_code'),
    'normalize_position': ('gitlab_reviewer.position_encoder', 'normalize_position'),
    'CommentSubmitter': ('gitlab_reviewer.comment_submitter', 'CommentSubmitter'),
    'CommentSubmissionError': ('gitlab_reviewer.comment_submitter', 'CommentSubmissionError'),
    'GitLabClient': ('gitlab_reviewer.gitlab_client', 'GitLabClient'),
    'GitLabClientError': ('gitlab_reviewer.gitlab_client', 'GitLabClientError'),
}


def __getattr__(name):
    target = _lazy_exports.get(name)
    if not target:
        raise AttributeError(f"module 'gitlab_reviewer' has no attribute '{name}'")
    module_path, attr_name = target
    try:
        module = __import__(module_path, fromlist=[attr_name])
        value = getattr(module, attr_name)
        globals()[name] = value  # cache for future access
        return value
    except ImportError as e:
        raise ImportError(f"Failed to import '{name}' from '{module_path}': {e}") from e
