"""Root conftest: shared test configuration."""

import os

# Never reach a real database, auth service or push gateway from tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-0123456789abcdef0123456789")
os.environ.setdefault("PUSH_GATEWAY_URL", "http://push.invalid/send")
os.environ.setdefault("LOG_FORMAT", "text")
