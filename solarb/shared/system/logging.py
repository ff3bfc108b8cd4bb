"""
Centralized Logger with Rich Console
====================================
Static logging facade shared by every stage of the engine.

Usage:
    from solarb.shared.system.logging import Logger

    Logger.info("[RAYDIUM] Fetched 412 SOL pools")
    Logger.success("[RELAY] Accepted 5xk3...")
    Logger.warning("[PIPELINE] Meteora unavailable, using cached snapshots")
    Logger.section("Detection Cycle")
"""

import os
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler

from rich.console import Console
from rich.text import Text

from config.settings import Settings

if not os.path.exists(Settings.LOG_DIR):
    os.makedirs(Settings.LOG_DIR, exist_ok=True)

# Per-run session log file
_run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
log_file = os.path.join(Settings.LOG_DIR, f"solarb_{_run_id}.log")

handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8")
formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
handler.setFormatter(formatter)

file_logger = logging.getLogger("solarb")
file_logger.setLevel(logging.DEBUG if Settings.DEBUG else logging.INFO)
file_logger.addHandler(handler)


# =============================================================================
# SOURCE ICONS (for visual scanning)
# =============================================================================

SOURCE_ICONS = {
    "SYSTEM": "🛸",
    "CONFIG": "⚙️",
    "RAYDIUM": "🟣",
    "METEORA": "☄️",
    "JUPITER": "🪐",
    "MATCH": "🔍",
    "RANK": "📊",
    "CACHE": "🗄️",
    "ASSEMBLE": "🧱",
    "GUARD": "🛡️",
    "SIM": "🧪",
    "SUBMIT": "✍️",
    "RELAY": "📡",
    "PIPELINE": "⚡",
    "CLI": "💻",
}

_console = Console()

LEVEL_STYLES = {
    "INFO": "cyan",
    "SUCCESS": "green bold",
    "WARNING": "yellow",
    "ERROR": "red bold",
    "DEBUG": "dim",
    "CRITICAL": "red bold reverse",
    "SECTION": "magenta bold",
}

_QUIET_LEVELS = {"INFO", "SUCCESS", "DEBUG"}


# =============================================================================
# LOGGER CLASS
# =============================================================================

class Logger:
    """
    Centralized logger with Rich console output.

    - Color-coded console lines: time | level | source | message
    - Per-run rotating file log under LOG_DIR
    - Source-based icon prefixes parsed from a leading [TAG]
    """

    @staticmethod
    def _timestamp() -> str:
        """High-precision timestamp (HH:MM:SS.ms)."""
        now = datetime.now()
        return f"{now.strftime('%H:%M:%S')}.{now.microsecond // 1000:03d}"

    @staticmethod
    def _parse_source(message: str) -> tuple:
        """Extract [SOURCE] tag from message if present."""
        stripped = message.strip()
        if stripped.startswith("[") and "]" in stripped:
            tag_end = stripped.index("]")
            source = stripped[1:tag_end].upper()
            if 0 < len(source) < 15:
                return source, stripped[tag_end + 1:].strip()
        return "SYSTEM", message

    @staticmethod
    def _format_console(level: str, message: str, source: str) -> None:
        quiet = Settings.SILENT_MODE
        if quiet and level in _QUIET_LEVELS:
            return
        if level == "DEBUG" and not Settings.DEBUG:
            return

        icon = SOURCE_ICONS.get(source, "")
        msg_with_icon = f"{icon} {message}" if icon else message
        style = LEVEL_STYLES.get(level, "white")

        line = Text()
        line.append(f"{Logger._timestamp()} ", style="dim")
        line.append(f"| {level[:8].ljust(8)} ", style=style)
        line.append(f"| {source[:10].ljust(10)} | ", style="dim")
        line.append(msg_with_icon)
        _console.print(line)

    @staticmethod
    def _log_to_file(level: int, message: str, source: str = "") -> None:
        file_logger.log(level, f"[{source}] {message}" if source else message)

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    @staticmethod
    def info(message: str) -> None:
        source, msg = Logger._parse_source(message)
        Logger._format_console("INFO", msg, source)
        Logger._log_to_file(logging.INFO, msg, source)

    @staticmethod
    def success(message: str) -> None:
        source, msg = Logger._parse_source(message)
        Logger._format_console("SUCCESS", msg, source)
        Logger._log_to_file(logging.INFO, f"✅ {msg}", source)

    @staticmethod
    def warning(message: str) -> None:
        source, msg = Logger._parse_source(message)
        Logger._format_console("WARNING", msg, source)
        Logger._log_to_file(logging.WARNING, msg, source)

    @staticmethod
    def error(message: str) -> None:
        source, msg = Logger._parse_source(message)
        Logger._format_console("ERROR", msg, source)
        Logger._log_to_file(logging.ERROR, msg, source)

    @staticmethod
    def debug(message: str) -> None:
        source, msg = Logger._parse_source(message)
        Logger._format_console("DEBUG", msg, source)
        Logger._log_to_file(logging.DEBUG, msg, source)

    @staticmethod
    def critical(message: str) -> None:
        source, msg = Logger._parse_source(message)
        Logger._format_console("CRITICAL", f"🛑 {msg}", source)
        Logger._log_to_file(logging.CRITICAL, f"🛑 {msg}", source)

    @staticmethod
    def section(title: str) -> None:
        """Print a section header."""
        if not Settings.SILENT_MODE:
            _console.print()
            _console.rule(f"[bold magenta]{title}[/]", style="dim")
        Logger._log_to_file(logging.INFO, f"=== {title} ===", "SYSTEM")
