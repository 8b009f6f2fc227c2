from __future__ import annotations

import pytest

from scribeflow.config import Settings


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        log_dir=str(tmp_path / "logs"),
    )
