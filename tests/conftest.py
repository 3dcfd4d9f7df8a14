"""
Brief: Shared pytest configuration and fixtures for dohgate tests.

Inputs:
  - None

Outputs:
  - None
"""

import logging
import os
import sys

import pytest

# Ensure 'src' is on sys.path so 'dohgate' is importable without installation.
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SRC_DIR = os.path.join(ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


class FakeClock:
    """
    Brief: Manually advanced clock returning epoch seconds.

    Inputs:
      - start: initial timestamp in seconds

    Outputs:
      - Callable returning the current fake time; advance(seconds) moves it.
    """

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


@pytest.fixture
def fake_clock() -> FakeClock:
    """
    Brief: Provide a fresh FakeClock per test.

    Outputs:
      - FakeClock instance
    """
    return FakeClock()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """
    Brief: Undo init_logging() side effects on the root logger after each test.

    Outputs:
      - None
    """
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)
