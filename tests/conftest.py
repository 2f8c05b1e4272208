from __future__ import annotations

import pytest

from tests.helpers.updates import UpdateRecorder


@pytest.fixture
def updates() -> UpdateRecorder:
    return UpdateRecorder()
