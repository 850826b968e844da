"""
Pytest configuration and fixtures for gitlab_reviewer tests.
"""

import pytest
import sys
import os

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from gitlab_reviewer.config import GitLabConfig
from gitlab_reviewer.models import MergeRequestDetails


VALID_TOKEN = "glpat-testtoken1234567890"


@pytest.fixture
def scenario_diff():
    """Diff whose hunk header over-counts the old side; two additions at new lines 4 and 7."""
    return """--- a/test.js
+++ b/test.js
@@ -1,9 +1,10 @@
 function test() {
   const a = 1;
   const b = 2;
+  const c = 3; // New line added at line 4
   console.log('existing line');
   return a + b;
+  return a + b + c; // Another new line at line 7
 }
 
 function anotherFunction() {"""


@pytest.fixture
def simple_diff():
    """Well-formed single hunk: context, context, addition, context."""
    return """--- a/main.py
+++ b/main.py
@@ -1,3 +1,4 @@
 import os
 import re
+import sys
 def main():
"""


@pytest.fixture
def multi_file_diff():
    """Git diff touching two files, with a modification and a deletion."""
    return """diff --git a/src/app.py b/src/app.py
index 1234567..abcdef0 100644
--- a/src/app.py
+++ b/src/app.py
@@ -10,3 +10,3 @@ def handler():
     value = compute()
-    return value
+    return value * 2
     # trailing
diff --git a/src/util.py b/src/util.py
index 7654321..fedcba9 100644
--- a/src/util.py
+++ b/src/util.py
@@ -1,3 +1,2 @@
 import os
-import sys
 import re
"""


@pytest.fixture
def gitlab_config():
    """GitLab configuration without retry delays."""
    return GitLabConfig(
        token=VALID_TOKEN,
        url="https://gitlab.example.com",
        timeout=5,
        max_retries=3,
        retry_delay_min=0,
        retry_delay_max=0,
    )


@pytest.fixture
def mr_details():
    """Merge request details with revision SHAs and a web URL."""
    return MergeRequestDetails(
        project_id=42,
        mr_iid=7,
        base_sha="base000",
        start_sha="start000",
        head_sha="head000",
        web_url="https://gitlab.example.com/group/project/-/merge_requests/7",
        project_path="group/project",
    )


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Reset environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith(("GITLAB_", "CI_", "OUTSIDE_DIFF_", "DROP_CONTEXT_", "INCLUDE_DEEP_",
                           "COMMENT_", "MAX_CONCURRENT_", "LOG_", "ENABLE_FILE_")):
            monkeypatch.delenv(key, raising=False)
