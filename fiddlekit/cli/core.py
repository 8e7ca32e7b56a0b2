"""
Core, reusable logic for CLI commands, decoupled from Typer.
"""
import asyncio
import json
import os
from pathlib import Path
from typing import Any, Optional

from fiddlekit.adapters.http.fiddle_api import FiddleApiClient
from fiddlekit.internal.constants import BASE_URL_ENV_VAR, DEFAULT_BASE_URL
from fiddlekit.kernel.execution import FiddleExecutionService

# Set by the main callback from --base-url / FIDDLEKIT_BASE_URL
_base_url: Optional[str] = None


def set_base_url(base_url: Optional[str]) -> None:
    global _base_url
    _base_url = base_url


def get_base_url() -> str:
    return _base_url or os.environ.get(BASE_URL_ENV_VAR) or DEFAULT_BASE_URL

# ---------------------------------------------------------------------
# Async helper
# ---------------------------------------------------------------------

def run_async(coro):
    """
    Safely run an async coroutine from sync code.
    Works whether an event loop exists or not.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        return loop.run_until_complete(coro)

# ---------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------

def build_service() -> FiddleExecutionService:
    return FiddleExecutionService(FiddleApiClient(base_url=get_base_url()))


def load_json_file(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def dump_json(data: Any) -> str:
    return json.dumps(data, indent=2, sort_keys=True)
