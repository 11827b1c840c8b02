import os
import sys
import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()


@pytest.fixture(autouse=True)
def _clear_token_env():
    """Ensure access tokens and matcher settings do not leak across tests.
    A developer's shell or .env may set these; clear before each test and restore
    afterwards so tests explicitly setting them remain deterministic.
    """
    keys = [
        'SPOTIFY_ACCESS_TOKEN',
        'GOOGLE_ACCESS_TOKEN',
        'BEATBRIDGE_SEARCH_LIMIT',
        'BEATBRIDGE_MIN_SCORE',
        'BEATBRIDGE_DURATION_WINDOW_MS',
        'BEATBRIDGE_SPOTIFY_MARKET',
    ]
    backup = {k: os.environ.get(k) for k in keys}
    for k in keys:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
