import pytest

from tests.fakes import solid_loader


@pytest.fixture
def loader():
    return solid_loader()
