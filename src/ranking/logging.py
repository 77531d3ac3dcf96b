"""
Rank operation logging system.

Provides context manager and logger class for tracking rank maintenance
operations (cache rebuilds, cleanup runs, quick value updates), including
inputs, result summaries, timing, and errors.

Entries go to a separate logs database (LOGS_DB_PATH) so that a failed
operation's rollback never discards its own log entry.
"""

import sys
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import settings
from db.models import RankOperationLog


def _logs_engine():
    db_path = settings.LOGS_DB_PATH
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f'sqlite:///{db_path}', echo=False)
    RankOperationLog.__table__.create(engine, checkfirst=True)
    return engine


class RankOperationLogger:
    """
    Logger for rank maintenance operations.

    Tracks the operation name, input parameters, result summary, timing,
    and errors.
    """

    def __init__(self, operation: str, context_data: Optional[Dict[str, Any]] = None):
        """
        Initialize logger.

        Args:
            operation: Operation name ('populate', 'cleanup', 'quick_value')
            context_data: Optional input parameters (cleanup kind, rank id, ...)
        """
        self.operation = operation
        self.context_data = context_data or {}

        # Timing
        self.started_at = datetime.utcnow()
        self.completed_at: Optional[datetime] = None
        self.duration_ms: Optional[int] = None

        # Result
        self.result_data: Optional[Dict[str, Any]] = None

        # Status
        self.success: bool = True
        self.error_message: Optional[str] = None
        self.log_id: Optional[int] = None

    def set_result(self, result_data: Dict[str, Any]):
        """Set the JSON-serializable result summary."""
        self.result_data = result_data

    def _finish(self):
        self.completed_at = datetime.utcnow()
        self.duration_ms = int((self.completed_at - self.started_at).total_seconds() * 1000)

    def mark_success(self):
        """Mark operation as successful and calculate duration."""
        self._finish()
        self.success = True

    def mark_error(self, error_message: str):
        """Mark operation as failed with error message."""
        self._finish()
        self.success = False
        self.error_message = error_message

    def save(self):
        """
        Save log entry to the logs database.

        Never raises: a logging failure prints a warning to stderr instead of
        interrupting the operation being logged. Retries on database locks.
        """
        if not settings.RANK_OPERATION_LOGGING:
            return

        try:
            engine = _logs_engine()
        except Exception as e:
            print(f"Warning: Failed to open rank operation log database: {e}", file=sys.stderr)
            return

        session = sessionmaker(bind=engine)()

        # Retry configuration for database locks
        max_retries = 3
        retry_delay = 0.1  # 100ms

        try:
            for attempt in range(max_retries):
                try:
                    log_entry = RankOperationLog(
                        operation=self.operation,
                        started_at=self.started_at,
                        completed_at=self.completed_at,
                        duration_ms=self.duration_ms,
                        context_data=self.context_data if self.context_data else None,
                        result_data=self.result_data,
                        success=1 if self.success else 0,
                        error_message=self.error_message
                    )
                    session.add(log_entry)
                    session.commit()
                    self.log_id = log_entry.id
                    break

                except OperationalError:
                    session.rollback()
                    if attempt < max_retries - 1:
                        time.sleep(retry_delay)
                        retry_delay *= 2  # Exponential backoff
                        continue
                    print(
                        f"Warning: Failed to save rank operation log after {max_retries} attempts (database locked)",
                        file=sys.stderr
                    )

                except Exception as e:
                    print(f"Warning: Failed to save rank operation log: {e}", file=sys.stderr)
                    session.rollback()
                    break

        finally:
            session.close()
            engine.dispose()


@contextmanager
def log_rank_operation(operation: str, context_data: Optional[Dict[str, Any]] = None):
    """
    Context manager for logging rank operations.

    Automatically handles success/error tracking and persistence.

    Example:
        >>> with log_rank_operation('cleanup', {'kind': 'term_delete', 'id': 5}) as logger:
        ...     result = coordinator.cleanup(CleanupKind.TERM_DELETE, 5)
        ...     logger.set_result(result.model_dump(mode='json'))
    """
    logger = RankOperationLogger(operation, context_data)

    try:
        yield logger
        logger.mark_success()
    except Exception as e:
        logger.mark_error(str(e))
        raise
    finally:
        logger.save()


def recent_operations(limit: int = 20, operation: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Read the most recent operation log entries.

    Returns:
        List of dictionaries, most recent first
    """
    engine = _logs_engine()
    session = sessionmaker(bind=engine)()
    try:
        query = session.query(RankOperationLog)
        if operation:
            query = query.filter(RankOperationLog.operation == operation)
        entries = query.order_by(RankOperationLog.started_at.desc(), RankOperationLog.id.desc()).limit(limit).all()

        return [
            {
                'id': e.id,
                'operation': e.operation,
                'started_at': e.started_at,
                'duration_ms': e.duration_ms,
                'success': bool(e.success),
                'context_data': e.context_data,
                'result_data': e.result_data,
                'error_message': e.error_message
            }
            for e in entries
        ]
    finally:
        session.close()
        engine.dispose()
