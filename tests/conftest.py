import pytest

from fractalviz.config import load_settings


@pytest.fixture
def settings():
    return load_settings()


@pytest.fixture
def small_state(settings):
    from fractalviz.state import ExplorerState
    return ExplorerState(16, 12, settings)
