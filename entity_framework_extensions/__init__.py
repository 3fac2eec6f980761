from entity_framework_extensions.conflicts import (
    ConflictEntry,
    ConflictReport,
    ConflictResolution,
    EntityNoLongerExists,
    Resolved,
    UnsupportedConflictEntity,
    resolve_conflicts,
)
from entity_framework_extensions.exceptions import (
    ConcurrencyConflictError,
    EntityFrameworkExtensionsError,
    EntityNoLongerExistsError,
    UnsupportedConflictEntityError,
    UpdateConcurrencyError,
)
from entity_framework_extensions.metadata import MappingMetadataProvider, get_table_info
from entity_framework_extensions.table_info import TableColumnInfo, TableInfo
from entity_framework_extensions.tracking import ChangeTrackingContext, EntityState, mark_for_add_or_update
