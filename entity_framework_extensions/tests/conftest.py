import typing

import attr
import pytest
from _pytest.config.argparsing import Parser

from entity_framework_extensions.tracking import ChangeTrackingContext, EntityState, Values


def pytest_addoption(parser: Parser) -> None:
    parser.addoption("--sqlalchemy-url", action="store", default=None)


@attr.s(auto_attribs=True)
class TrackedEntry:
    state: EntityState = EntityState.UNCHANGED
    current: Values = attr.Factory(dict)
    original: Values = attr.Factory(dict)
    database: typing.Optional[Values] = None


class InMemoryChangeTrackingContext(ChangeTrackingContext):
    def __init__(self) -> None:
        self._entries: typing.Dict[int, TrackedEntry] = {}
        self.database_reads: typing.List[typing.Any] = []

    def track(
        self,
        entity: typing.Any,
        current: Values,
        database: typing.Optional[Values] = None,
        state: EntityState = EntityState.MODIFIED,
    ) -> typing.Any:
        self._entries[id(entity)] = TrackedEntry(state, dict(current), dict(current), database)
        return entity

    def get_state(self, entity: typing.Any) -> EntityState:
        entry = self._entries.get(id(entity))
        return entry.state if entry else EntityState.DETACHED

    def set_state(self, entity: typing.Any, state: EntityState) -> None:
        self._entries.setdefault(id(entity), TrackedEntry()).state = state

    def get_current_values(self, entity: typing.Any) -> Values:
        return dict(self._entries[id(entity)].current)

    def set_current_values(self, entity: typing.Any, values: Values) -> None:
        self._entries[id(entity)].current = dict(values)

    def get_original_values(self, entity: typing.Any) -> Values:
        return dict(self._entries[id(entity)].original)

    def set_original_values(self, entity: typing.Any, values: Values) -> None:
        self._entries[id(entity)].original = dict(values)

    def get_database_values(self, entity: typing.Any) -> typing.Optional[Values]:
        self.database_reads.append(entity)
        database = self._entries[id(entity)].database
        return dict(database) if database is not None else None


@pytest.fixture()
def context() -> InMemoryChangeTrackingContext:
    return InMemoryChangeTrackingContext()
