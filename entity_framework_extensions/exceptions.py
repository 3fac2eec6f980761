import typing

if typing.TYPE_CHECKING:
    from entity_framework_extensions.conflicts import ConflictReport


class EntityFrameworkExtensionsError(Exception):
    pass


class ConcurrencyConflictError(EntityFrameworkExtensionsError):
    pass


class EntityNoLongerExistsError(ConcurrencyConflictError, LookupError):
    def __init__(self, entity: typing.Any) -> None:
        super().__init__(f"{type(entity).__name__} no longer exists in the database")
        self.entity = entity


class UnsupportedConflictEntityError(ConcurrencyConflictError, TypeError):
    def __init__(self, entity: typing.Any, expected_type: typing.Type) -> None:
        super().__init__(
            f"Can not resolve conflicts for {type(entity).__name__}, expected {expected_type.__name__}"
        )
        self.entity = entity
        self.entity_type = type(entity)
        self.expected_type = expected_type


class UpdateConcurrencyError(ConcurrencyConflictError):
    def __init__(self, report: "ConflictReport") -> None:
        super().__init__(f"{len(report)} entities were changed or deleted since they were loaded")
        self.report = report
