"""Claude CLI adapter - subprocess wrapper for suggestion explanations."""

import logging
import shutil
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def find_claude_binary() -> str:
    """Locate the claude executable, falling back to the bare name."""
    return shutil.which("claude") or "claude"


class ClaudeCLIService:
    """
    Claude CLI subprocess adapter.

    Implements LLMService protocol. Explanations are a nice-to-have, so the
    default timeout is short; every failure surfaces as RuntimeError.
    """

    def __init__(
        self,
        cwd: Path | str | None = None,
        timeout: int = 20,
        binary: str | None = None,
    ):
        self.cwd = Path(cwd) if cwd else None
        self.timeout = timeout
        self.binary = binary or find_claude_binary()

    def generate(self, prompt: str) -> str:
        """Generate text from a prompt. Returns complete response."""
        try:
            proc = subprocess.run(
                [self.binary, "-p", prompt],
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            raise RuntimeError("Claude CLI not found. Install with: npm install -g @anthropic-ai/claude-code")
        except subprocess.TimeoutExpired:
            raise RuntimeError(f"Claude CLI timed out after {self.timeout}s")

        if proc.returncode != 0:
            logger.error(f"Claude CLI failed: {proc.stderr}")
            raise RuntimeError(f"Claude CLI failed: {proc.stderr}")
        return proc.stdout
