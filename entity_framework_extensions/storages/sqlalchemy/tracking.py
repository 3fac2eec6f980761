import logging
import typing

import sqlalchemy
from sqlalchemy import select
from sqlalchemy.orm import InstanceState, Mapper, Session
from sqlalchemy.orm.attributes import flag_modified, set_committed_value
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.orm.session import make_transient, make_transient_to_detached

from entity_framework_extensions.conflicts import ConflictEntry, ConflictReport
from entity_framework_extensions.exceptions import UpdateConcurrencyError
from entity_framework_extensions.tracking import ChangeTrackingContext, EntityState, Values


logger = logging.getLogger(__name__)


class SqlAlchemyChangeTrackingContext(ChangeTrackingContext):
    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    def get_state(self, entity: typing.Any) -> EntityState:
        state: InstanceState = sqlalchemy.inspect(entity)
        if state.transient or state.detached:
            return EntityState.DETACHED
        if state.pending:
            return EntityState.ADDED
        if state.deleted or entity in self._session.deleted:
            return EntityState.DELETED
        if self._session.is_modified(entity):
            return EntityState.MODIFIED
        return EntityState.UNCHANGED

    def set_state(self, entity: typing.Any, state: EntityState) -> None:
        logger.debug("Setting state of %s to %s", type(entity).__name__, state)
        if state is EntityState.ADDED:
            make_transient(entity)
            self._session.add(entity)
        elif state is EntityState.MODIFIED:
            self._attach(entity)
            for key in self._writable_keys(entity):
                flag_modified(entity, key)
        elif state is EntityState.DELETED:
            if sqlalchemy.inspect(entity).pending:
                self._session.expunge(entity)
                return
            self._attach(entity)
            self._session.delete(entity)
        elif state is EntityState.UNCHANGED:
            self._attach(entity)
            instance_state: InstanceState = sqlalchemy.inspect(entity)
            for prop in instance_state.mapper.column_attrs:
                if prop.key in instance_state.dict:
                    set_committed_value(entity, prop.key, instance_state.dict[prop.key])
        elif state is EntityState.DETACHED:
            if sqlalchemy.inspect(entity).session is not None:
                self._session.expunge(entity)
        else:
            raise ValueError(f"Unsupported entity state - {state}")

    def get_current_values(self, entity: typing.Any) -> Values:
        mapper: Mapper = sqlalchemy.inspect(entity).mapper
        return {prop.key: getattr(entity, prop.key) for prop in mapper.column_attrs}

    def set_current_values(self, entity: typing.Any, values: Values) -> None:
        version_key = self._version_key(entity)
        for prop in sqlalchemy.inspect(entity).mapper.column_attrs:
            if prop.key in values and prop.key != version_key:
                setattr(entity, prop.key, values[prop.key])

    def get_original_values(self, entity: typing.Any) -> Values:
        state: InstanceState = sqlalchemy.inspect(entity)
        values = {}
        for prop in state.mapper.column_attrs:
            history = state.attrs[prop.key].history
            values[prop.key] = history.deleted[0] if history.deleted else state.dict.get(prop.key)
        return values

    def set_original_values(self, entity: typing.Any, values: Values) -> None:
        # committing a value overwrites the current one too
        for prop in sqlalchemy.inspect(entity).mapper.column_attrs:
            if prop.key in values:
                set_committed_value(entity, prop.key, values[prop.key])

    def get_database_values(self, entity: typing.Any) -> typing.Optional[Values]:
        state: InstanceState = sqlalchemy.inspect(entity)
        mapper: Mapper = state.mapper
        # identity of an expired instance is known without loading it
        identity = state.identity or mapper.primary_key_from_instance(entity)
        props = list(mapper.column_attrs)
        query = (
            select(*[prop.columns[0] for prop in props])
            .select_from(mapper.persist_selectable)
            .where(*[column == value for column, value in zip(mapper.primary_key, identity)])
        )
        with self._session.no_autoflush:
            row = self._session.execute(query).first()
        if row is None:
            return None
        return {prop.key: value for prop, value in zip(props, row)}

    def save_changes(self) -> None:
        """Flushes pending changes inside a savepoint.

        When a versioned row turns out to be changed or deleted by someone else, only the savepoint is rolled back:
        work flushed earlier in the transaction stays as it is, and this flush's pending changes are put back in
        place. `UpdateConcurrencyError` is raised then, its report holds only the entities whose stored row no
        longer matches what they were loaded from.
        """
        new = list(self._session.new)
        deleted = [(entity, self.get_original_values(entity)) for entity in self._session.deleted]
        dirty = [
            (entity, self.get_current_values(entity), self.get_original_values(entity))
            for entity in self._session.dirty
        ]
        # begin_nested() flushes whatever is pending before the savepoint exists, so park it first
        for entity in new:
            self._session.expunge(entity)
        for entity, _ in deleted:
            self._session.expunge(entity)
        for entity, _, original in dirty:
            self.set_original_values(entity, original)

        try:
            with self._session.begin_nested():
                self._replay(new, deleted, dirty)
                self._session.flush()
        except StaleDataError as exc:
            self._replay(new, deleted, dirty)
            entries = [
                ConflictEntry(entity, current)
                for entity, current, original in dirty
                if self._is_conflicting(entity, original)
            ]
            entries.extend(
                ConflictEntry(entity, original)
                for entity, original in deleted
                if self._is_conflicting(entity, original)
            )
            logger.warning("Concurrency conflict on %d entities: %s", len(entries), exc)
            raise UpdateConcurrencyError(ConflictReport(entries, exc)) from exc

    def _replay(
        self,
        new: typing.List[typing.Any],
        deleted: typing.List[typing.Tuple[typing.Any, Values]],
        dirty: typing.List[typing.Tuple[typing.Any, Values, Values]],
    ) -> None:
        self._session.add_all(new)
        for entity, _ in deleted:
            self._session.add(entity)
            self._session.delete(entity)
        for entity, current, original in dirty:
            self.set_original_values(entity, original)
            self.set_current_values(entity, current)

    def _is_conflicting(self, entity: typing.Any, original: Values) -> bool:
        database_values = self.get_database_values(entity)
        if database_values is None:
            return True
        version_key = self._version_key(entity)
        return version_key is not None and database_values[version_key] != original[version_key]

    def _attach(self, entity: typing.Any) -> None:
        state: InstanceState = sqlalchemy.inspect(entity)
        if state.pending or entity in self._session.deleted:
            self._session.expunge(entity)
        if state.transient:
            make_transient_to_detached(entity)
        if state.detached:
            self._session.add(entity)

    def _writable_keys(self, entity: typing.Any) -> typing.List[str]:
        state: InstanceState = sqlalchemy.inspect(entity)
        primary_keys = {state.mapper.get_property_by_column(column).key for column in state.mapper.primary_key}
        excluded = primary_keys | {self._version_key(entity)}
        return [
            prop.key for prop in state.mapper.column_attrs if prop.key in state.dict and prop.key not in excluded
        ]

    @staticmethod
    def _version_key(entity: typing.Any) -> typing.Optional[str]:
        mapper: Mapper = sqlalchemy.inspect(entity).mapper
        if mapper.version_id_col is None:
            return None
        return mapper.get_property_by_column(mapper.version_id_col).key
