"""
Sentinel - Logger Module
========================

Tree-style console and file logging with daily log folders.

DESIGN:
    Moderation decisions are easier to audit when every related fact sits
    under one heading, so most call sites use `logger.tree()` with a list of
    (key, value) pairs instead of free-form strings.

    - Dated log directory per day, pruned after LOG_RETENTION_DAYS
    - Separate error file for quick triage
    - Run ID in the session header to correlate restarts
    - Optional Discord webhook for errors that carry details
"""

import asyncio
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import aiohttp


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("SENTINEL_LOG_DIR", "logs"))
"""Root directory for dated log folders."""

LOG_RETENTION_DAYS = 7
"""Days of log folders kept on disk."""

TREE_BRANCH = "├─"
TREE_LAST = "└─"
TREE_PIPE = "│  "


# =============================================================================
# Tree Logger
# =============================================================================

class TreeLogger:
    """
    Logger that renders structured entries as small trees.

    Attributes:
        run_id: Short identifier for this process.
        log_file: Main log file for today.
        error_file: Error-only log file for today.
    """

    def __init__(self, name: str = "Sentinel") -> None:
        self.name = name
        self.run_id: str = uuid.uuid4().hex[:8]
        self._webhook_url: Optional[str] = None

        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        self.log_dir = LOGS_DIR / today
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"{name}-{today}.log"
        self.error_file = self.log_dir / f"{name}-Errors-{today}.log"

        self._prune_old_logs()
        self._append(
            self.log_file,
            f"\n{'=' * 60}\nSESSION {self.run_id} STARTED {self._stamp()}\n{'=' * 60}\n",
        )

    def set_webhook(self, url: Optional[str]) -> None:
        """Send errors with details to this Discord webhook."""
        self._webhook_url = url

    # =========================================================================
    # Housekeeping
    # =========================================================================

    def _prune_old_logs(self) -> None:
        """Delete dated folders older than the retention window."""
        if not LOGS_DIR.exists():
            return

        now = datetime.now()
        for item in LOGS_DIR.iterdir():
            if not item.is_dir():
                continue
            try:
                folder_date = datetime.strptime(item.name, "%Y-%m-%d")
            except ValueError:
                continue
            if (now - folder_date).days > LOG_RETENTION_DAYS:
                for f in item.iterdir():
                    f.unlink()
                item.rmdir()

    # =========================================================================
    # Output
    # =========================================================================

    @staticmethod
    def _stamp() -> str:
        return datetime.now(timezone.utc).strftime("[%H:%M:%S UTC]")

    @staticmethod
    def _append(path: Path, text: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)

    def _write(
        self,
        message: str,
        emoji: str = "",
        timestamp: bool = True,
        is_error: bool = False,
    ) -> None:
        prefix = f"{emoji} " if emoji else ""
        line = f"{self._stamp()} {prefix}{message}" if timestamp else f"{prefix}{message}"

        print(line)
        self._append(self.log_file, line + "\n")
        if is_error:
            self._append(self.error_file, line + "\n")

    def _write_items(self, items: List[Tuple[str, str]], is_error: bool = False) -> None:
        for i, (key, value) in enumerate(items):
            branch = TREE_LAST if i == len(items) - 1 else TREE_BRANCH
            self._write(f"  {branch} {key}: {value}", timestamp=False, is_error=is_error)

    # =========================================================================
    # Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: List[Tuple[str, str]],
        emoji: str = "📦",
    ) -> None:
        """
        Log a heading followed by (key, value) branches.

        Example output:
            [14:02:11 UTC] 🛡️ Violation Handled
              ├─ User: 1234
              └─ Type: link_spam
        """
        self._write(title, emoji=emoji)
        self._write_items(items)

    def tree_nested(
        self,
        title: str,
        sections: List[Tuple[str, List[Tuple[str, str]]]],
        emoji: str = "📦",
    ) -> None:
        """Log a heading with named sections, each holding its own branches."""
        self._write(title, emoji=emoji)
        for i, (section, items) in enumerate(sections):
            last_section = i == len(sections) - 1
            self._write(f"  {TREE_LAST if last_section else TREE_BRANCH} {section}", timestamp=False)
            indent = "   " if last_section else TREE_PIPE
            for j, (key, value) in enumerate(items):
                branch = TREE_LAST if j == len(items) - 1 else TREE_BRANCH
                self._write(f"  {indent} {branch} {key}: {value}", timestamp=False)

    # =========================================================================
    # Levels
    # =========================================================================

    def debug(self, msg: str) -> None:
        """Only written when the DEBUG environment variable is set."""
        if os.getenv("DEBUG"):
            self._write(msg, "🔍")

    def info(self, msg: str) -> None:
        self._write(msg, "ℹ️")

    def warning(self, msg: str, details: Optional[List[Tuple[str, str]]] = None) -> None:
        self._write(msg, "⚠️")
        if details:
            self._write_items(details)

    def error(self, msg: str, details: Optional[List[Tuple[str, str]]] = None) -> None:
        """
        Log an error, optionally with structured details.

        Errors with details are also pushed to the webhook when one is set
        and an event loop is running.
        """
        self._write(msg, "❌", is_error=True)
        if not details:
            return

        self._write_items(details, is_error=True)
        if self._webhook_url:
            try:
                asyncio.get_running_loop().create_task(self._post_webhook(msg, details))
            except RuntimeError:
                pass  # no loop, e.g. during startup

    def critical(self, msg: str) -> None:
        self._write(msg, "🚨", is_error=True)

    # =========================================================================
    # Webhook
    # =========================================================================

    async def _post_webhook(self, title: str, details: List[Tuple[str, str]]) -> None:
        payload = {
            "embeds": [{
                "title": f"❌ {title}",
                "description": "\n".join(f"**{k}:** {v}" for k, v in details),
                "color": 0xDC3545,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "footer": {"text": f"Run ID: {self.run_id}"},
            }]
        }
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as resp:
                    if resp.status not in (200, 204):
                        print(f"Error webhook returned {resp.status}")
        except aiohttp.ClientError as e:
            print(f"Error webhook failed: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()


__all__ = [
    "logger",
    "TreeLogger",
]
