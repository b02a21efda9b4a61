"""Root conftest — points COPYDESK_DIR at a temp dir BEFORE copydesk is imported.

Settings resolve their base directory from the environment, so this must
run before pytest collects any test that imports copydesk, keeping tests
away from the real ~/.copydesk.
"""

import os
import tempfile

# Force-set (not setdefault) to prevent real env vars from leaking into tests
os.environ["COPYDESK_DIR"] = tempfile.mkdtemp(prefix="copydesk-test-")
os.environ.pop("COPYDESK_REMOTE_URL", None)
