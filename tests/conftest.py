"""공용 테스트 픽스처"""

import pytest

from _helpers import CountingTokenProvider


@pytest.fixture
def token_provider() -> CountingTokenProvider:
    return CountingTokenProvider("ya29.test-token", project_id="my-project")
