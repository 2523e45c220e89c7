import sys

import pytest


@pytest.fixture
def py():
    """argv prefix running an inline Python snippet in a child interpreter."""
    def _argv(code: str) -> list:
        return [sys.executable, "-c", code]
    return _argv
