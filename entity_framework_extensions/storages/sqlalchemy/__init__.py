from entity_framework_extensions.storages.sqlalchemy.conflicts import is_concurrency_conflict
from entity_framework_extensions.storages.sqlalchemy.metadata import SqlAlchemyMetadataProvider
from entity_framework_extensions.storages.sqlalchemy.tracking import SqlAlchemyChangeTrackingContext
