"""Default adapters for the external collaborators (GitHub artifacts, comments, gists).

The core never imports from here; the CLIs wire these in.
"""

from __future__ import annotations

__all__ = ["github"]
