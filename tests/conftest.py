# tests/conftest.py
# Ensure src/ is importable as a module during pytest runs
import pathlib
import sys

import pandas as pd
import pytest

SRC = pathlib.Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def example_scores():
    return pd.DataFrame(
        {"Up": [0.9, 0.1, -0.9, 0.3], "Down": [-0.8, 0.05, 0.85, 0.2]},
        index=["A", "B", "C", "D"],
    )


@pytest.fixture
def example_signature():
    return pd.DataFrame(
        {"gene": ["G1", "G2", "G3", "G4"], "expression": [1, 1, -1, -1]}
    )
