"""
Command/result wrapper for mutating operations.

Every write goes through ``execute``: the unit of work is committed when
the operation returns and rolled back on any failure, and the caller gets
a ``CommandResult`` either way instead of an exception.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from roadside import db
from roadside.errors import BackendError, ConflictError, RescueError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    ok: bool
    value: Any = None
    error: Optional[RescueError] = None

    def unwrap(self):
        """Return the value or raise the captured error."""
        if not self.ok:
            raise self.error
        return self.value


_ROLLBACK_HOOKS = 'rollback_hooks'


def on_rollback(callback):
    """
    Call ``callback()`` if the running command is rolled back.

    Used for in-process state that has to be undone together with the
    database work, such as a location watch opened before the commit.
    """
    db.session.info.setdefault(_ROLLBACK_HOOKS, []).append(callback)


def _rollback(name):
    db.session.rollback()
    for callback in db.session.info.pop(_ROLLBACK_HOOKS, []):
        try:
            callback()
        except Exception:
            logger.exception('Rollback hook for %s failed', name)


def execute(operation, *args, **kwargs):
    """Run ``operation`` in its own transaction and report the outcome."""
    name = getattr(operation, '__name__', repr(operation))
    db.session.info.pop(_ROLLBACK_HOOKS, None)
    try:
        value = operation(*args, **kwargs)
        db.session.commit()
    except RescueError as e:
        _rollback(name)
        logger.info('%s rejected: %s', name, e.message)
        return CommandResult(ok=False, error=e)
    except StaleDataError:
        _rollback(name)
        logger.warning('%s lost a concurrent update', name)
        return CommandResult(
            ok=False,
            error=ConflictError('This record was changed by someone else. Reload and try again.'),
        )
    except IntegrityError:
        _rollback(name)
        logger.warning('%s hit a uniqueness or reference violation', name)
        return CommandResult(
            ok=False,
            error=ConflictError('This record conflicts with an existing one.'),
        )
    except SQLAlchemyError:
        _rollback(name)
        logger.exception('%s failed in the database', name)
        return CommandResult(ok=False, error=BackendError('Database error. Please try again.'))
    except Exception:
        _rollback(name)
        raise
    db.session.info.pop(_ROLLBACK_HOOKS, None)
    return CommandResult(ok=True, value=value)


def run(operation, *args, **kwargs):
    """``execute`` and raise on failure; for blueprints that let errors propagate."""
    return execute(operation, *args, **kwargs).unwrap()
