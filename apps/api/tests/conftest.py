import os
import tempfile
from pathlib import Path

# Must happen before anything imports app.core.config
_DB_DIR = Path(tempfile.mkdtemp(prefix="vupload-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.sqlite'}"
os.environ["ENV"] = "test"
os.environ.pop("NOTIFY_WEBHOOK_URL", None)

import pytest  # noqa: E402

from app.db.base import Base  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()
