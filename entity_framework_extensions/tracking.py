import abc
import enum
import logging
import typing


logger = logging.getLogger(__name__)

Values = typing.Dict[str, typing.Any]


class EntityState(enum.Enum):
    UNCHANGED = "UNCHANGED"
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"
    DETACHED = "DETACHED"


class ChangeTrackingContext(abc.ABC):
    """Unit of work which tracks in-memory entities against their stored rows.

    Snapshots are plain dicts keyed by field name, ordered the way the mapping declares the fields.
    """

    @abc.abstractmethod
    def get_state(self, entity: typing.Any) -> EntityState:
        pass

    @abc.abstractmethod
    def set_state(self, entity: typing.Any, state: EntityState) -> None:
        pass

    @abc.abstractmethod
    def get_current_values(self, entity: typing.Any) -> Values:
        pass

    @abc.abstractmethod
    def set_current_values(self, entity: typing.Any, values: Values) -> None:
        pass

    @abc.abstractmethod
    def get_original_values(self, entity: typing.Any) -> Values:
        pass

    @abc.abstractmethod
    def set_original_values(self, entity: typing.Any, values: Values) -> None:
        """Rebases the entity. May reset current values as well, so set those afterwards."""

    @abc.abstractmethod
    def get_database_values(self, entity: typing.Any) -> typing.Optional[Values]:
        """Fetches the row as it is stored right now, None if it has been deleted."""


def mark_for_add_or_update(
    context: ChangeTrackingContext, entity: typing.Any, should_add: typing.Callable[[typing.Any], bool]
) -> None:
    if entity is None:
        return

    state = EntityState.ADDED if should_add(entity) else EntityState.MODIFIED
    logger.debug("Marking %s as %s", type(entity).__name__, state.value)
    context.set_state(entity, state)
