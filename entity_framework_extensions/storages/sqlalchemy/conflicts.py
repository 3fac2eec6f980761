from sqlalchemy.orm.exc import StaleDataError

from entity_framework_extensions.exceptions import ConcurrencyConflictError


def is_concurrency_conflict(exc: BaseException) -> bool:
    return isinstance(exc, (StaleDataError, ConcurrencyConflictError))
