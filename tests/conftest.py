"""Shared pytest fixtures for layerpack tests."""
import logging
import os
import tarfile
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List
from unittest.mock import MagicMock

import pytest
import yaml

from layerpack.infrastructure import config_manager, logger as logger_module
from layerpack.infrastructure.logger import Logger, LogLevel


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    """Create a source directory with test files."""
    source = temp_dir / "source"
    source.mkdir()

    (source / "a.txt").write_text("alpha")
    (source / "b.log").write_text("beta")

    (source / "sub").mkdir()
    (source / "sub" / "c.txt").write_text("gamma")
    (source / "sub" / "d.bin").write_bytes(b"\x00\x01\x02")

    (source / "build").mkdir()
    (source / "build" / "output.o").write_text("object")

    return source


@pytest.fixture
def output_dir(temp_dir: Path) -> Path:
    """Directory receiving layer archives (not created yet)."""
    return temp_dir / "out"


@pytest.fixture
def mock_handler() -> MagicMock:
    """Logging handler recording every record it receives."""
    handler = MagicMock(spec=logging.Handler)
    handler.level = logging.DEBUG
    return handler


@pytest.fixture
def quiet_logger(mock_handler: MagicMock) -> Logger:
    """Debug-level logger writing only to ``mock_handler``."""
    return Logger(name="layerpack.test", level=LogLevel.DEBUG, handlers=[mock_handler])


class TarReader:
    """Reads archives back with the standard tarfile module."""

    def members(self, archive: Path) -> Dict[str, tarfile.TarInfo]:
        with tarfile.open(archive, "r:") as tar:
            return {member.name: member for member in tar.getmembers()}

    def names(self, archive: Path) -> List[str]:
        with tarfile.open(archive, "r:") as tar:
            return tar.getnames()

    def content(self, archive: Path, name: str) -> bytes:
        with tarfile.open(archive, "r:") as tar:
            return tar.extractfile(name).read()


@pytest.fixture
def tar_reader() -> TarReader:
    """Archive inspection helper."""
    return TarReader()


@pytest.fixture
def logged(mock_handler: MagicMock) -> Callable[[], List[str]]:
    """Returns the formatted messages ``mock_handler`` has seen so far."""

    def messages() -> List[str]:
        return [call[0][0].getMessage() for call in mock_handler.handle.call_args_list]

    return messages


@pytest.fixture
def sample_config(source_dir: Path) -> Dict[str, Any]:
    """Provide a sample build configuration."""
    return {
        "creationTime": "2020-01-01T00:00:00Z",
        "from": {
            "platforms": [
                "linux/amd64",
                {"os": "linux", "architecture": "arm64"},
            ]
        },
        "layers": {
            "properties": {
                "filePermissions": "644",
                "directoryPermissions": "755",
                "user": "1000",
                "group": "1000",
                "timestamp": "1700000000000",
            },
            "entries": [
                {
                    "name": "app",
                    "files": [
                        {
                            "src": str(source_dir),
                            "dest": "/opt/app/",
                            "excludes": ["build"],
                        }
                    ],
                },
                {
                    "name": "logs",
                    "properties": {"user": "2000"},
                    "files": [
                        {
                            "src": str(source_dir / "b.log"),
                            "dest": "/var/log/",
                            "properties": {"filePermissions": "600"},
                        }
                    ],
                },
            ],
        },
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config: Dict[str, Any]) -> Path:
    """Create a build configuration file."""
    config_path = temp_dir / "image.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config, f)
    return config_path


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Reset global logger/settings instances and LAYERPACK_* variables."""
    for key in list(os.environ):
        if key.startswith("LAYERPACK_"):
            monkeypatch.delenv(key)
    logger_module._global_logger = None
    config_manager._global_config = None
    yield
    logger_module._global_logger = None
    config_manager._global_config = None
