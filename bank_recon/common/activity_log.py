"""
Activity Journal

Records statement imports, commits and alias writes made through the API
in JSONL format, one file per day. Integrated with structured logging.
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict
from bank_recon.common.logging_config import get_logger

logger = get_logger(__name__)

LOG_DIR = Path.cwd() / "logs" / "activities"


class ActivityLogger:
    """
    Appends activity entries to logs/activities/activity_{date}.jsonl
    """

    def __init__(self, log_dir: Optional[Path] = None):
        self.log_dir = Path(log_dir) if log_dir else LOG_DIR
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def log(
        self,
        action: str,
        details: Optional[Dict] = None,
        category: str = "general",
        user: str = "system"
    ):
        """
        Log an activity.

        Args:
            action: Description of the action
            details: Additional details (dict)
            category: Action category (import, commit, alias)
            user: Session identifier
        """
        entry = {
            "timestamp": datetime.now().isoformat(),
            "user": user,
            "action": action,
            "category": category,
            "details": details or {}
        }

        logger.info(
            f"Activity: {action}",
            category=category,
            user=user,
            activity_details=details or {}
        )

        log_file = self.log_dir / f"activity_{datetime.now().strftime('%Y-%m-%d')}.jsonl"

        try:
            with open(log_file, 'a', encoding='utf-8') as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + '\n')
        except OSError as e:
            logger.error(f"Failed to log activity: {e}", exc_info=True)


_activity_logger = None


def configure_activity_logger(log_dir: Optional[Path] = None) -> ActivityLogger:
    """Replace the global ActivityLogger (used by the API factory and tests)."""
    global _activity_logger
    _activity_logger = ActivityLogger(log_dir)
    return _activity_logger


def get_activity_logger() -> ActivityLogger:
    """Get global ActivityLogger instance."""
    global _activity_logger
    if _activity_logger is None:
        _activity_logger = ActivityLogger()
    return _activity_logger


def log_activity(action: str, details: Optional[Dict] = None, category: str = "general", user: str = "anonymous"):
    get_activity_logger().log(action, details, category, user)


def log_import(filename: str, statement_format: str, summary: Dict, user: str = "anonymous"):
    """Log a statement import."""
    log_activity(
        f"Import: {filename}",
        {"filename": filename, "format": statement_format, "summary": summary},
        category="import",
        user=user
    )


def log_commit(filename: str, entries: int, updates: int, skipped: int, user: str = "anonymous"):
    """Log a commit of reviewed rows."""
    log_activity(
        f"Commit: {filename} -> {entries} new, {updates} reconciled",
        {"filename": filename, "entries": entries, "reconciliation_updates": updates, "skipped": skipped},
        category="commit",
        user=user
    )


def log_alias(bank_name: str, bank_bin: str, client_id: str, user: str = "anonymous"):
    """Log an alias upsert."""
    log_activity(
        f"Alias: {bank_name or bank_bin} -> {client_id}",
        {"bank_name": bank_name, "bank_bin": bank_bin, "client_id": client_id},
        category="alias",
        user=user
    )
