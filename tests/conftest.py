import pytest

from shimmer import Domain


@pytest.fixture(autouse=True)
def domain():
    """A fresh, active domain per test, so no graph state leaks between tests."""
    d = Domain(name="test")
    with d.activate():
        yield d
    d.close()
