"""Root conftest.py for hwtest-nanovna.

Puts the package source on the import path, registers the custom markers and
tags tests that rely on fakes or mocks with ``uses_mock`` so hardware-backed
runs can select them out (``pytest -m "not uses_mock"``).
"""

from __future__ import annotations

import ast
import inspect
import sys
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.nodes import Item


PROJECT_ROOT = Path(__file__).parent
for pkg_dir in PROJECT_ROOT.glob("hwtest-*/src"):
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "uses_mock: Test runs against a mock, fake or emulator")
    config.addinivalue_line("markers", "integration: Integration test requiring a real NanoVNA")
    config.addinivalue_line("markers", "slow: Slow-running test")


class MockDetector(ast.NodeVisitor):
    """AST visitor flagging test bodies that build mocks or fake transports."""

    CALL_NAMES = frozenset({
        # unittest.mock
        "MagicMock",
        "Mock",
        "patch",
        "create_autospec",
        # In-process stand-ins for a serial port
        "make_emulator",
        "NanoVnaEmulator",
        "ChunkTransport",
        "TableTransport",
        "DeadTransport",
    })

    def __init__(self) -> None:
        self.uses_mock = False

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        name = func.id if isinstance(func, ast.Name) else getattr(func, "attr", "")
        if name in self.CALL_NAMES or name.startswith("_make_mock") or name in ("_device", "_channel"):
            self.uses_mock = True
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        if any("mock" in arg.arg.lower() for arg in node.args.args):
            self.uses_mock = True
        self.generic_visit(node)


def _uses_mock(item: Item) -> bool:
    if "mock" in item.name.lower() or "fake" in item.name.lower():
        return True
    obj = getattr(item, "obj", None)
    if obj is None:
        return False
    try:
        tree = ast.parse(textwrap.dedent(inspect.getsource(obj)))
    except (OSError, TypeError, SyntaxError):
        return False
    detector = MockDetector()
    detector.visit(tree)
    return detector.uses_mock


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Mark tests that use mocking."""
    for item in items:
        if not item.get_closest_marker("uses_mock") and _uses_mock(item):
            item.add_marker(pytest.mark.uses_mock)


def pytest_report_header(config: Config) -> list[str]:
    """Add the suite name to the pytest header."""
    return ["hwtest-nanovna test suite"]
