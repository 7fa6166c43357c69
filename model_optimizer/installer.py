"""
Wrappers around the ollama CLI and the coding assistant
"""

import logging
import os
import shutil
import subprocess
import sys
import time
from typing import List, Optional, Sequence

from .exceptions import InstallerUnavailable, LaunchFailed, PullFailed

logger = logging.getLogger(__name__)

OLLAMA_DOWNLOAD_URL = "https://ollama.ai/download"
DEFAULT_OLLAMA_API_BASE = "http://127.0.0.1:11434"


class OllamaInstaller:
    """Pulls and lists models through the ollama binary"""

    def __init__(self, binary: str = "ollama"):
        self.binary = binary

    def ensure_available(self) -> str:
        """Return the path of the ollama binary or raise InstallerUnavailable"""
        path = shutil.which(self.binary)
        if not path:
            raise InstallerUnavailable(
                f"Ollama is not installed! Install it from: {OLLAMA_DOWNLOAD_URL}"
            )
        return path

    def _run(self, *args: str, capture: bool = True) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                [self.binary, *args],
                capture_output=capture,
                text=True,
            )
        except FileNotFoundError:
            raise InstallerUnavailable(
                f"Ollama is not installed! Install it from: {OLLAMA_DOWNLOAD_URL}"
            )

    def is_running(self) -> bool:
        return self._run("list").returncode == 0

    def start_service(self, wait: float = 3.0) -> subprocess.Popen:
        """Start `ollama serve` in the background and give it a moment to come up"""
        logger.info("Starting Ollama service...")
        proc = subprocess.Popen(
            [self.binary, "serve"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        time.sleep(wait)
        return proc

    def ensure_running(self) -> None:
        self.ensure_available()
        if not self.is_running():
            self.start_service()

    def pull(self, name: str) -> None:
        """Download a model, streaming ollama's progress to the terminal"""
        logger.info(f"Pulling {name}...")
        result = self._run("pull", name, capture=False)
        if result.returncode != 0:
            raise PullFailed(name, result.returncode)

    def list_installed(self) -> List[str]:
        """Names of locally installed models, as reported by `ollama list`"""
        result = self._run("list")
        if result.returncode != 0:
            logger.warning(f"ollama list failed: {result.stderr.strip()}")
            return []

        names = []
        for line in result.stdout.splitlines():
            parts = line.split()
            if not parts or parts[0] == "NAME":
                continue
            names.append(parts[0])
        return names

    def is_installed(self, name: str) -> bool:
        installed = self.list_installed()
        if ":" not in name:
            name = f"{name}:latest"
        return name in installed


class AssistantLauncher:
    """Starts the aider coding assistant bound to an ollama model"""

    PACKAGE = "aider-chat"

    def __init__(self, command: str = "aider", default_args: Optional[Sequence[str]] = None):
        self.command = command
        self.default_args = list(default_args or [])

    @staticmethod
    def model_identifier(name: str) -> str:
        return f"ollama/{name}"

    def is_installed(self) -> bool:
        return shutil.which(self.command) is not None

    def install(self) -> None:
        """Install the assistant into the current Python environment"""
        logger.info(f"Installing {self.PACKAGE}...")
        result = subprocess.run([sys.executable, "-m", "pip", "install", self.PACKAGE])
        if result.returncode != 0:
            raise LaunchFailed(f"Failed to install {self.PACKAGE} (exit code {result.returncode})")

    def build_command(self, name: str, extra_args: Sequence[str] = ()) -> List[str]:
        return [self.command, "--model", self.model_identifier(name), *self.default_args, *extra_args]

    def run(self, name: str, extra_args: Sequence[str] = ()) -> None:
        """Run the assistant in the foreground until the user quits it"""
        if not self.is_installed():
            raise LaunchFailed(f"{self.command} is not installed")

        env = dict(os.environ)
        env.setdefault("OLLAMA_API_BASE", DEFAULT_OLLAMA_API_BASE)

        command = self.build_command(name, extra_args)
        logger.debug(f"Launching: {' '.join(command)}")
        try:
            result = subprocess.run(command, env=env)
        except OSError as e:
            raise LaunchFailed(f"Failed to start {self.command}: {e}")

        if result.returncode != 0:
            raise LaunchFailed(f"{self.command} exited with code {result.returncode}")
