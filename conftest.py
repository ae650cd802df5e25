import pytest

from test_rriff import TestResult


@pytest.fixture
def r(request):
    """Per-test result record, the same object the standalone runner passes."""
    return TestResult(request.node.name)
