import logging
import typing

import attr

from entity_framework_extensions.exceptions import (
    EntityNoLongerExistsError,
    UnsupportedConflictEntityError,
)
from entity_framework_extensions.tracking import ChangeTrackingContext, Values


logger = logging.getLogger(__name__)

EntityType = typing.TypeVar("EntityType")

MergeField = typing.Callable[[str, typing.Any, typing.Any], typing.Any]


@attr.s(auto_attribs=True, frozen=True)
class ConflictEntry:
    entity: typing.Any
    proposed_values: Values = attr.ib(converter=dict)


@attr.s(auto_attribs=True, frozen=True)
class ConflictReport:
    entries: typing.Tuple[ConflictEntry, ...] = attr.ib(converter=tuple)
    error: typing.Optional[BaseException] = None

    def __iter__(self) -> typing.Iterator[ConflictEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@attr.s(auto_attribs=True, frozen=True)
class Resolved:
    entries: typing.Tuple[ConflictEntry, ...] = attr.ib(converter=tuple)
    ok: bool = attr.ib(default=True, init=False)

    def unwrap(self) -> typing.Tuple[ConflictEntry, ...]:
        return self.entries


@attr.s(auto_attribs=True, frozen=True)
class EntityNoLongerExists:
    entity: typing.Any
    ok: bool = attr.ib(default=False, init=False)

    def unwrap(self) -> typing.NoReturn:
        raise EntityNoLongerExistsError(self.entity)


@attr.s(auto_attribs=True, frozen=True)
class UnsupportedConflictEntity:
    entity: typing.Any
    expected_type: typing.Type
    ok: bool = attr.ib(default=False, init=False)

    @property
    def entity_type(self) -> typing.Type:
        return type(self.entity)

    def unwrap(self) -> typing.NoReturn:
        raise UnsupportedConflictEntityError(self.entity, self.expected_type)


ConflictResolution = typing.Union[Resolved, EntityNoLongerExists, UnsupportedConflictEntity]


def resolve_conflicts(
    context: ChangeTrackingContext,
    report: ConflictReport,
    merge_field: MergeField,
    entity_type: typing.Type[EntityType],
) -> ConflictResolution:
    """Merges proposed values of conflicting entities with what is currently stored.

    `merge_field(field_name, proposed_value, database_value)` is called once per field and its result becomes
    the new proposed value. Each entity is then rebased onto the stored row, so that retrying the save no longer
    detects the same conflict. Nothing is persisted here.

    Every entry is checked and its stored row fetched before any of them is touched, so on failure (first one in
    report order) no entry is left partially merged.
    """
    database_snapshots: typing.List[Values] = []
    for entry in report:
        if not isinstance(entry.entity, entity_type):
            logger.warning(
                "Conflict on %s can not be resolved as %s", type(entry.entity).__name__, entity_type.__name__
            )
            return UnsupportedConflictEntity(entry.entity, entity_type)

        database_values = context.get_database_values(entry.entity)
        if database_values is None:
            logger.warning("%s was deleted concurrently, can not merge", type(entry.entity).__name__)
            return EntityNoLongerExists(entry.entity)
        database_snapshots.append(database_values)

    for entry, database_values in zip(report, database_snapshots):
        merged = {
            field: merge_field(field, proposed, database_values.get(field))
            for field, proposed in entry.proposed_values.items()
        }
        logger.debug("Merged %s: %r", type(entry.entity).__name__, merged)
        context.set_original_values(entry.entity, database_values)
        context.set_current_values(entry.entity, merged)

    logger.info("Resolved %d concurrency conflict(s) for %s", len(report), entity_type.__name__)
    return Resolved(report.entries)
