"""Configuration constants for the resolver response sampler.

This module centralizes all tunable parameters. To modify behavior:
- Edit values in this file directly
- Override via environment variables where supported (or a .env file at the repo root)
- Pass CLI flags, which take precedence over both

Common reasons to modify:
- Endpoints: Point a service at a local or staging instance
- Timeouts: Increase for slow resolvers or decrease while debugging
- Pause: Respect the rate limit of the services being sampled
"""

import os
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parent
REPO_ROOT = PACKAGE_ROOT.parent


# =============================================================================
# Service Endpoints
# =============================================================================

GETIT_ENDPOINT = os.environ.get("GETIT_ENDPOINT", "https://dev.getit.library.nyu.edu/resolve")
SFX_ENDPOINT = os.environ.get("SFX_ENDPOINT", "http://sfx.library.nyu.edu/sfxlcl41")
ARIADNE_ENDPOINT = os.environ.get("ARIADNE_ENDPOINT", "http://localhost:3000/")


# =============================================================================
# Directories
# =============================================================================

RESPONSE_SAMPLES_DIR = Path(os.environ.get("RESPONSE_SAMPLES_DIR", REPO_ROOT / "response-samples"))
TEST_CASE_FILES_DIR = Path(os.environ.get("TEST_CASE_FILES_DIR", REPO_ROOT / "test-case-files"))
LOGS_DIR = Path(os.environ.get("LOGS_DIR", REPO_ROOT / "logs"))

INDEX_FILE_NAME = "index.json"


# =============================================================================
# Test Cases & Index
# =============================================================================

# Only lines starting with this prefix are treated as test-case URLs
TEST_CASE_URL_PREFIX = "getit.library.nyu.edu/resolve?"

# fetchTimestamp values in index.json are recorded in this zone
INDEX_TIME_ZONE = "America/New_York"


# =============================================================================
# Browser & Timing
# =============================================================================

# Seconds to wait for navigation plus the per-service completion heuristic
DEFAULT_TIMEOUT = float(os.environ.get("SAMPLER_TIMEOUT", "300.0"))

# Seconds to pause after each fully sampled URL (SFX rate limit)
FETCH_PAUSE_SECONDS = float(os.environ.get("FETCH_PAUSE_SECONDS", "3.0"))

# Seconds allowed for the GetIt updater-script probe once the page has loaded.
# The <script> is either already attached or it is not, so keep this short.
UPDATER_PROBE_TIMEOUT = 0.1
