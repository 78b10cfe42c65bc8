"""
Register pytest plugins, fixtures, and hooks to be used during test execution.

All fixtures are organized in the fixtures/ directory.
"""

import sys
from pathlib import Path

THIS_DIR = Path(__file__).parent
TESTS_DIR_PARENT = (THIS_DIR / "..").resolve()

# add the parent directory of tests/ to PYTHONPATH
# so that "apps", "utils" and "tests" import from the working tree
sys.path.insert(0, str(TESTS_DIR_PARENT))

pytest_plugins = [
    # Fake reporting API
    "tests.fixtures.api_fixtures",
    # Object storage mocks
    "tests.fixtures.storage_fixtures",
    # Settings
    "tests.fixtures.config_fixtures",
]
