import logging
from typing import Any, Callable, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def run_detached(session_factory: sessionmaker, func: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Run `func(db, *args, **kwargs)` in its own session and transaction.
    Any failure is logged and absorbed; the caller's work is never affected.
    """
    db: Session = session_factory()
    try:
        result = func(db, *args, **kwargs)
        db.commit()
        return result
    except Exception as e:
        db.rollback()
        logger.warning(f"Detached task {func.__name__} failed: {e}", exc_info=True)
        return None
    finally:
        db.close()


def dispatch_detached(
    background_tasks: Optional[BackgroundTasks],
    session_factory: sessionmaker,
    func: Callable[..., Any],
    *args,
    **kwargs
) -> None:
    """
    Fire-and-forget: schedule `func` after the response when running inside a
    request, otherwise run it right away. Either way it cannot raise.
    """
    if background_tasks is not None:
        background_tasks.add_task(run_detached, session_factory, func, *args, **kwargs)
    else:
        run_detached(session_factory, func, *args, **kwargs)
