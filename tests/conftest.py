"""
Test configuration and fixtures
"""
import logging
import sys
from pathlib import Path

# Add project root and src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(project_root))
sys.path.insert(0, str(src_path))

import pytest


@pytest.fixture(autouse=True)
def reset_coinguard_logger():
    """Drop handlers the CLI attaches so later tests do not write to closed streams."""
    yield
    package_logger = logging.getLogger("coinguard")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.setLevel(logging.NOTSET)
