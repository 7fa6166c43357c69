"""
Pytest configuration and fixtures
"""

import io
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

import pytest
from rich.console import Console

from model_optimizer.catalog import ModelDescriptor
from model_optimizer.matcher import FitResult
from model_optimizer.selector import ModelChooser


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def mock_home_dir(temp_dir, monkeypatch):
    """Mock home directory for testing"""
    monkeypatch.setattr(Path, 'home', lambda: temp_dir)
    monkeypatch.setenv("HOME", str(temp_dir))
    monkeypatch.delenv("MODEL_OPTIMIZER_CATALOG", raising=False)
    return temp_dir


@pytest.fixture
def console():
    """Console writing to a buffer instead of the terminal"""
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def small_catalog():
    return [
        ModelDescriptor("big:32b", 20, 24, 32768, "Large model"),
        ModelDescriptor("mid:14b", 12, 16, 32768, "Medium model"),
        ModelDescriptor("small:7b", 5, 6, 32768, "Small model"),
    ]


class ScriptedChooser(ModelChooser):
    """Chooser with canned answers, recording every question asked"""

    def __init__(self, confirms: Optional[List[bool]] = None, pick: Optional[int] = 0, context: Optional[int] = None):
        self.confirms = list(confirms or [])
        self.pick = pick
        self.context = context
        self.questions: List[str] = []

    def confirm(self, question: str, default: bool = False) -> bool:
        self.questions.append(question)
        return self.confirms.pop(0) if self.confirms else default

    def choose_model(self, candidates: Sequence[FitResult]) -> Optional[FitResult]:
        if self.pick is None:
            return None
        return candidates[self.pick]

    def ask_context(self, default: int) -> int:
        return self.context if self.context is not None else default


@pytest.fixture
def scripted_chooser():
    return ScriptedChooser
