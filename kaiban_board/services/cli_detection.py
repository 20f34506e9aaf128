"""Detection of installed AI coding CLIs."""

import logging
import re
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Optional

from ..core.constants import (
    CLI_DETECTION_CACHE_SECONDS,
    CLI_DISPLAY_NAMES,
    CLI_INSTALL_INSTRUCTIONS,
    CLI_PREFERENCE_ORDER,
    PROBE_TIMEOUT,
)
from .exceptions import CLIUnavailableError

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"\d+\.\d+(\.\d+)?")


@dataclass
class CLIDetectionResult:
    name: str
    available: bool
    executable_path: str
    version: Optional[str] = None
    error: Optional[str] = None


class CLIDetectionService:
    """Finds which AI CLIs are installed and picks one to use."""

    def __init__(self, executable_overrides: Optional[dict[str, str]] = None):
        """Initialize detection service.

        Args:
            executable_overrides: CLI name -> executable path, for non-standard installs
        """
        self.executable_overrides = executable_overrides or {}
        self._cache: dict[str, CLIDetectionResult] = {}
        self._cached_at = 0.0

    def detect_cli(self, name: str) -> CLIDetectionResult:
        """Look up one CLI on PATH and read its version."""
        executable = self.executable_overrides.get(name, name)
        resolved = shutil.which(executable)
        if not resolved:
            return CLIDetectionResult(name=name, available=False, executable_path=executable)

        result = CLIDetectionResult(name=name, available=True, executable_path=resolved)
        try:
            output = subprocess.run(
                [resolved, "--version"],
                capture_output=True,
                text=True,
                timeout=PROBE_TIMEOUT,
            )
            match = VERSION_PATTERN.search(output.stdout or "")
            if match:
                result.version = match.group(0)
        except (subprocess.TimeoutExpired, OSError) as e:
            # Installed but the version probe failed; still usable
            logger.debug(f"Version probe for {name} failed: {e}")
            result.error = str(e)
        return result

    def detect_all(self, force_refresh: bool = False) -> list[CLIDetectionResult]:
        """Detect every supported CLI, reusing results for a few minutes."""
        now = time.monotonic()
        if not force_refresh and self._cache and now - self._cached_at < CLI_DETECTION_CACHE_SECONDS:
            return [self._cache[name] for name in CLI_PREFERENCE_ORDER]

        self._cache = {name: self.detect_cli(name) for name in CLI_PREFERENCE_ORDER}
        self._cached_at = now
        return [self._cache[name] for name in CLI_PREFERENCE_ORDER]

    def select_provider(self, mode: str = "auto", allowed: Optional[list[str]] = None) -> Optional[str]:
        """Pick a provider.

        Args:
            mode: "auto" or a CLI name; a missing named CLI falls back to auto
            allowed: Restrict the choice to these CLIs, in preference order

        Returns:
            The chosen CLI name, or None if nothing usable is installed
        """
        available = [r.name for r in self.detect_all() if r.available]
        candidates = [name for name in (allowed or CLI_PREFERENCE_ORDER) if name in available]
        if mode != "auto" and mode in candidates:
            return mode
        return candidates[0] if candidates else None

    def require_provider(self, mode: str = "auto", allowed: Optional[list[str]] = None) -> str:
        """Like select_provider, but raise with install guidance when nothing is found.

        Raises:
            CLIUnavailableError: If no allowed CLI is installed
        """
        provider = self.select_provider(mode, allowed)
        if provider is None:
            names = allowed or CLI_PREFERENCE_ORDER
            hints = "; ".join(CLI_INSTALL_INSTRUCTIONS[name] for name in names)
            raise CLIUnavailableError(
                f"No AI CLI available ({', '.join(CLI_DISPLAY_NAMES[n] for n in names)}). {hints}"
            )
        return provider

    def executable_for(self, name: str) -> str:
        for result in self.detect_all():
            if result.name == name and result.available:
                return result.executable_path
        return self.executable_overrides.get(name, name)
