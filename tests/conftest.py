"""Root conftest: shared test configuration.

Settings are cached on first access, so the environment is pinned here
before any atreo module is imported.
"""

import os
import tempfile

os.environ.setdefault("ATREO_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ATREO_ENVIRONMENT", "test")
os.environ.setdefault("ATREO_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("ATREO_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ATREO_CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("ATREO_UPLOAD_DIR", tempfile.mkdtemp(prefix="atreo-uploads-"))
os.environ.setdefault("ATREO_ADMIN_EMAIL", "owner@example.com")
