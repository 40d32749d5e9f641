import pytest
import sys
from pathlib import Path

# Add repo root to path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

# Skip all tests when required dependencies are missing
_required = ["numpy", "scipy", "matplotlib", "pandas", "iminuit"]
for pkg in _required:
    pytest.importorskip(pkg, reason=f"Package '{pkg}' is required for tests")

import matplotlib

matplotlib.use("Agg")

from io_utils import load_config


@pytest.fixture
def make_config(tmp_path):
    """Return a loaded config pointing at ``tmp_path / 'runs'``."""

    def _make(**sections):
        cfg = {
            "catalog": {"directory": str(tmp_path / "runs"), "echo_files": False},
            "plotting": {"output": str(tmp_path / "chart.pdf")},
        }
        for name, values in sections.items():
            cfg.setdefault(name, {}).update(values)
        return load_config(cfg)

    return _make
