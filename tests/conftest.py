"""测试夹具"""

import pytest

from cms_viewer.models.viewer import ApiSource
from cms_viewer.services.api_client import ContentApiClient
from helpers import BASE_URL, OTHER_URL, FakeCms


@pytest.fixture
def source():
    return ApiSource(id="current", name="Current Site", base_url=BASE_URL)


@pytest.fixture
def other_source():
    return ApiSource(id="other", name="Other Site", base_url=OTHER_URL)


@pytest.fixture
def cms():
    return FakeCms()


@pytest.fixture
def api(cms):
    return ContentApiClient(nonce="", timeout=5, retry_count=1, transport=cms.transport())
