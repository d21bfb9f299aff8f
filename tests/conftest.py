"""Shared fixtures: scripted providers and sample diffs."""
from __future__ import annotations

import pytest

from docreview.models import PRDetails

# One file, one chunk; line 42 is the only added line.
E2E_DIFF = """diff --git a/tidb-configuration.md b/tidb-configuration.md
index 3f1a2b0..8c9d4e1 100644
--- a/tidb-configuration.md
+++ b/tidb-configuration.md
@@ -40,2 +40,3 @@ ## PD 配置
 修改 PD 配置后，
 执行以下命令：
+重启 PD 群，使此更新生效：
"""

MULTI_FILE_DIFF = """diff --git a/docs/a.md b/docs/a.md
index 1111111..2222222 100644
--- a/docs/a.md
+++ b/docs/a.md
@@ -1,2 +1,2 @@
 # Title
-Old text.
+New text.
diff --git a/docs/b.md b/docs/b.md
index 3333333..4444444 100644
--- a/docs/b.md
+++ b/docs/b.md
@@ -10,1 +10,2 @@
 context
+another line
diff --git a/docs/gone.md b/docs/gone.md
deleted file mode 100644
index 5555555..0000000
--- a/docs/gone.md
+++ /dev/null
@@ -1,1 +0,0 @@
-bye
"""


class ScriptedProvider:
    """Returns (or raises) queued responses in order and records every prompt."""

    def __init__(self, name: str, responses=()):
        self.name = name
        self.responses = list(responses)
        self.prompts: list[str] = []

    def complete(self, prompt: str, tool: str = "review"):
        self.prompts.append(prompt)
        if not self.responses:
            return None
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class AlwaysProvider(ScriptedProvider):
    """Returns the same response for every call."""

    def __init__(self, name: str, response):
        super().__init__(name)
        self.response = response

    def complete(self, prompt: str, tool: str = "review"):
        self.prompts.append(prompt)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


@pytest.fixture
def pr() -> PRDetails:
    return PRDetails(
        owner="pingcap",
        repo="docs-cn",
        pull_number=101,
        title="Update PD configuration guide",
        description="Clarify restart steps.",
    )
