from __future__ import annotations

import sys
from pathlib import Path

from setuptools import setup

APP = ["src/claude_tokens/app.py"]
RESOURCES_DIR = Path("src/claude_tokens/assets")


def _read_version(default: str = "0.1.0") -> str:
    try:
        import tomllib  # type: ignore[attr-defined]
    except ModuleNotFoundError:  # pragma: no cover - Python <3.11 keeps the default
        return default
    with (Path(__file__).parent / "pyproject.toml").open("rb") as handle:
        return tomllib.load(handle).get("project", {}).get("version", default)


def _patch_py2app() -> None:  # pragma: no cover - used only during app builds
    from py2app import util as py2app_util

    _orig_is_platform_file = py2app_util.is_platform_file

    def _patched_is_platform_file(path: str) -> bool:
        """Treat extra binary-like files as signable for ad-hoc codesign."""

        if path.endswith((".a", ".sh")):
            return True
        return _orig_is_platform_file(path)

    py2app_util.is_platform_file = _patched_is_platform_file


if "py2app" in sys.argv:  # pragma: no cover - macOS bundle builds only
    _patch_py2app()
    version = _read_version()
    options = {
        "argv_emulation": False,
        "packages": ["claude_tokens", "httpx", "watchdog"],
        "plist": {
            "LSUIElement": True,
            "CFBundleName": "Claude Tokens",
            "CFBundleIdentifier": "com.claude-tokens.menubar",
            "CFBundleShortVersionString": version,
            "CFBundleVersion": version,
        },
        "resources": [str(RESOURCES_DIR)] if RESOURCES_DIR.exists() else [],
    }
    setup(app=APP, options={"py2app": options})
else:
    # Regular installs are fully described by pyproject.toml.
    setup()
