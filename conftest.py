from __future__ import annotations

import os
import tempfile

import django


os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "citywatch.settings")
os.environ.setdefault(
    "CITYWATCH_DATABASE_URL",
    f"sqlite:///{os.path.join(tempfile.mkdtemp(prefix='citywatch-'), 'bootstrap.db')}",
)
os.environ["CITYWATCH_SYNC_AUTOSTART"] = "0"
os.environ["CITYWATCH_SEED_ON_STARTUP"] = "0"

django.setup()
