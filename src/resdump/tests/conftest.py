import sys

import pytest
from loguru import logger

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """不读取真实用户目录下的配置"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("RESDUMP_CONFIG", raising=False)
    yield home
    # CLI 测试会把日志输出重定向到 CliRunner 的流
    logger.remove()
    logger.add(sys.stderr, level="WARNING")


@pytest.fixture
def png_bytes():
    return PNG_BYTES
