import pytest
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("RATELIMIT_STORAGE_URL", "memory://")

from coachfit.app import app, limiter

@pytest.fixture()
def client():
    app.config.update(TESTING=True, JWT_SECRET_KEY="test-secret-key")
    limiter.reset()
    with app.test_client() as client:
        yield client
