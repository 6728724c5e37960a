"""Root conftest.py for test configuration.

Puts the local src/ tree ahead of any installed codegraph and keeps the
run correlation id from leaking between tests.
"""

import sys
from collections.abc import Generator
from pathlib import Path

import pytest

_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Drop codegraph modules imported before the path change
for module_name in list(sys.modules.keys()):
    if module_name.startswith("codegraph"):
        del sys.modules[module_name]


@pytest.fixture(autouse=True)
def _clear_run_id() -> Generator[None, None, None]:
    from codegraph.core.logging import clear_run_id

    clear_run_id()
    yield
    clear_run_id()
