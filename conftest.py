# Ensure project root is in sys.path for test imports
import sys
import os
from dotenv import load_dotenv

import pytest

project_root = os.path.dirname(os.path.abspath(__file__))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Load .env file for tests
load_dotenv(os.path.join(project_root, ".env"))
# a developer's dev.yml must not change what the tests see
os.environ["POLLINATIONS_IGNORE_DEV_CONFIG"] = "true"

from pollinations_mcp.core.config import load_settings  # noqa: E402


@pytest.fixture
def settings():
    """Default settings with the offline upstream client."""
    cfg = load_settings()
    cfg["upstream"] = {"impl": "pollinations_mcp.providers.dummy.DummyGenerationClient", "args": {}}
    return cfg
