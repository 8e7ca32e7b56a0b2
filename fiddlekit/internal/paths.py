import os
from pathlib import Path


# ---------------------------------------------------------------------
# Base directories
# ---------------------------------------------------------------------

def get_app_data_dir() -> Path:
    """
    Returns the application data directory.

    - Windows: %APPDATA%\\fiddlekit
    - Linux/macOS: ~/.fiddlekit
    """
    if os.name == "nt":  # Windows
        base = os.environ.get("APPDATA", str(Path.home()))
        path = Path(base) / "fiddlekit"
    else:  # Linux / macOS
        path = Path.home() / ".fiddlekit"

    path.mkdir(parents=True, exist_ok=True)
    return path


def get_log_dir() -> Path:
    path = get_app_data_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# ---------------------------------------------------------------------
# Log files
# ---------------------------------------------------------------------

def get_log_file() -> Path:
    """
    JSON log file written by the default logging setup.
    """
    return get_log_dir() / "fiddlekit.log.json"


# ---------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------

if __name__ == "__main__":
    print("App Data Dir:", get_app_data_dir())
    print("Log Dir:", get_log_dir())
    print("Log File:", get_log_file())
