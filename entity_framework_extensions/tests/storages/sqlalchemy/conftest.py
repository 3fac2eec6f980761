import pathlib
from typing import Generator

import pytest
from _pytest.fixtures import SubRequest
from sqlalchemy.engine import Engine, create_engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker


@pytest.fixture()
def engine(request: SubRequest, tmp_path: pathlib.Path) -> Generator[Engine, None, None]:
    connection_url = request.config.getoption("--sqlalchemy-url") or f"sqlite:///{tmp_path / 'db.sqlite'}"
    engine = create_engine(connection_url)
    yield engine
    engine.dispose()


@pytest.fixture()
def sa_base() -> DeclarativeMeta:
    return declarative_base()


@pytest.fixture()
def session_factory(sa_base: DeclarativeMeta, engine: Engine) -> Generator[sessionmaker, None, None]:
    sa_base.metadata.drop_all(engine)
    sa_base.metadata.create_all(engine)
    yield sessionmaker(engine)
    sa_base.metadata.drop_all(engine)


@pytest.fixture()
def session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
