import pathlib
import site

import pytest
import recordmap
from recordmap.options import DEFAULT_TAG

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_caches():
    """Reset the default mapper before and after each test to ensure test isolation."""
    recordmap.set_tag(DEFAULT_TAG)
    recordmap.default_mapper().cache.clear()
    yield
    recordmap.set_tag(DEFAULT_TAG)
    recordmap.default_mapper().cache.clear()


pytest_plugins = [
    'tests.fixtures.records',
    'tests.fixtures.cursors',
    'tests.fixtures.sqlite',
]
