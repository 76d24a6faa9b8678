from __future__ import annotations

import importlib.util
import sys
from functools import lru_cache
from pathlib import Path
from types import ModuleType

import pytest


def _find_repo_root() -> Path:
    here = Path(__file__).resolve()
    for candidate in [here, *here.parents]:
        if (candidate / "frontend").exists() and (candidate / "README.md").exists():
            return candidate
    raise RuntimeError("Could not locate repository root from tests/conftest.py")


REPO_ROOT = _find_repo_root()

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@lru_cache(maxsize=64)
def load_module_from_file(file_path: str, module_name: str) -> ModuleType:
    path = Path(file_path).resolve()
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise RuntimeError(f"Failed to load module spec from {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


def repo_file(rel_path: str) -> Path:
    return REPO_ROOT / rel_path


@pytest.fixture(scope="session")
def repo_root() -> Path:
    return REPO_ROOT


@pytest.fixture(scope="session")
def repo_file_fn():
    return repo_file


@pytest.fixture(scope="session")
def module_loader():
    return load_module_from_file


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch) -> Path:
    root = tmp_path / "workspace"
    monkeypatch.setenv("SUNBURST_WORKSPACE", str(root))
    return root


class FakeClock:
    def __init__(self, start: float = 100.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()
