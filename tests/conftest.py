import sys
from pathlib import Path

import pytest

# Enforce marker discipline so each test maps to a documented suite category.
ALLOWED_MARKERS = {"web", "store", "uploads", "config", "integration"}

# Keep `board` and the top-level modules importable from any working dir.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def store(data_dir):
    """Post store rooted in an isolated temporary data directory."""
    from post_store import PostStore

    return PostStore(data_dir)


@pytest.fixture
def app(data_dir, upload_dir):
    """Create the board app against temporary data/upload directories."""
    from board import create_app

    app = create_app(
        test_config={
            "TESTING": True,
            "DATA_DIR": str(data_dir),
            "UPLOAD_DIR": str(upload_dir),
        }
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_store(app):
    """The post store instance the app's handlers use."""
    return app.config["POST_STORE"]


def pytest_collection_modifyitems(session, config, items):
    unmarked = []
    for item in items:
        # Accept tests carrying any one approved marker; multiple markers are also valid.
        if not ALLOWED_MARKERS.intersection(item.keywords):
            unmarked.append(item.nodeid)

    if unmarked:
        # Fail collection early so CI does not run partially categorized suites.
        joined = "\n".join(f"- {nodeid}" for nodeid in unmarked)
        raise pytest.UsageError(
            "Each test must include at least one approved marker "
            f"({', '.join(sorted(ALLOWED_MARKERS))}).\n"
            "Unmarked tests:\n"
            f"{joined}"
        )
