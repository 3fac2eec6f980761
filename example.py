import atexit
import logging

from sqlalchemy import Column, Float, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from entity_framework_extensions import UpdateConcurrencyError, mark_for_add_or_update, resolve_conflicts
from entity_framework_extensions.storages.sqlalchemy import SqlAlchemyChangeTrackingContext, SqlAlchemyMetadataProvider


logging.basicConfig(level=logging.DEBUG)

Base = declarative_base()


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    discount = Column(Float, nullable=False)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}


engine = create_engine("sqlite:///plays.sqlite", echo=True)
Base.metadata.create_all(engine)
SessionC = sessionmaker(bind=engine)

print(SqlAlchemyMetadataProvider(engine.dialect).describe(Plan))

session = SessionC(expire_on_commit=False)
context = SqlAlchemyChangeTrackingContext(session)

plan = Plan(id=1, name="basic", discount=0.0)
mark_for_add_or_update(context, plan, lambda entity: session.get(Plan, entity.id) is None)
session.commit()

with SessionC() as other_session:
    other_session.get(Plan, 1).discount = 0.5
    other_session.commit()

plan.name = "premium"
try:
    context.save_changes()
except UpdateConcurrencyError as exc:
    resolve_conflicts(
        context, exc.report, lambda field, proposed, database: proposed if field == "name" else database, Plan
    ).unwrap()
    context.save_changes()
session.commit()

with SessionC() as other_session:
    got_plan = other_session.get(Plan, 1)
    assert (got_plan.name, got_plan.discount) == ("premium", 0.5), f"\n{got_plan.name}, {got_plan.discount}"


@atexit.register
def finalize():
    session.close()
    Base.metadata.drop_all(engine)
