import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from sfs.app import create_app
from sfs.auth import passwords
from sfs.pipeline import build_pipeline
from sfs.policy import AccessPolicy

INDEX = "Space: the final frontier"
FILE = "These are the voyages of the starship Enterprise."
SUB_INDEX = "Its continuing mission:"
SUB_FILE = "To explore strange new worlds"
DEEP_FILE = "To boldly go where no one has gone before"


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    # Production argon2 parameters cost 64 MiB per hash; keep tests quick.
    monkeypatch.setattr(passwords, "TIME_COST", 1)
    monkeypatch.setattr(passwords, "MEMORY_COST_KIB", 1024)
    monkeypatch.setattr(passwords, "PARALLELISM", 1)


@pytest.fixture()
def site(tmp_path: Path) -> Path:
    """
    Served folder:
      index.html, file.txt
      sub/index.html, sub/file.txt
      sub/deep/file.txt   (no index)
      empty/
    """
    root = tmp_path / "site"
    files = {
        "index.html": INDEX,
        "file.txt": FILE,
        "sub/index.html": SUB_INDEX,
        "sub/file.txt": SUB_FILE,
        "sub/deep/file.txt": DEEP_FILE,
    }
    for rel, contents in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(contents, encoding="utf-8")
    (root / "empty").mkdir()
    return root


@pytest.fixture()
def make_client(site: Path):
    def _make(policy: AccessPolicy = AccessPolicy(), store=None) -> TestClient:
        return TestClient(create_app(build_pipeline(policy, str(site), store)))

    return _make
