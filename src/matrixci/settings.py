from __future__ import annotations
import os

# Extra runner labels accepted on top of the GitHub-hosted ones (comma separated).
EXTRA_PLATFORMS = [p.strip() for p in os.environ.get("MATRIXCI_PLATFORMS", "").split(",") if p.strip()]
# Optional namespace put in front of every resolved cache key.
CACHE_PREFIX = os.environ.get("MATRIXCI_CACHE_PREFIX") or None
DEFAULT_WORKFLOW_DIR = os.environ.get("MATRIXCI_WORKFLOW_DIR", ".github/workflows")
