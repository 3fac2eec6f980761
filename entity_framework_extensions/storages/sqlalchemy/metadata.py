import typing

import sqlalchemy
from sqlalchemy import Column
from sqlalchemy.engine import Dialect
from sqlalchemy.engine.default import DefaultDialect
from sqlalchemy.orm import ColumnProperty, Mapper
from sqlalchemy.sql import FromClause

from entity_framework_extensions.metadata import MappingMetadataProvider
from entity_framework_extensions.table_info import TableColumnInfo, TableInfo


class SqlAlchemyMetadataProvider(MappingMetadataProvider):
    def __init__(self, dialect: typing.Optional[Dialect] = None) -> None:
        self._dialect = dialect or DefaultDialect()

    def describe(self, mapped_type: typing.Type) -> typing.Optional[TableInfo]:
        mapper: typing.Optional[Mapper] = sqlalchemy.inspect(mapped_type, raiseerr=False)
        if not isinstance(mapper, Mapper):
            return None

        table = mapper.local_table
        return TableInfo(
            table_name=getattr(table, "name", None),
            table_schema=getattr(table, "schema", None),
            columns=[self._describe_column(prop, table) for prop in mapper.column_attrs],
        )

    def _describe_column(self, prop: ColumnProperty, table: FromClause) -> TableColumnInfo:
        column: typing.Optional[Column] = next(
            (col for col in prop.columns if getattr(col, "table", None) is table), None
        )
        if column is None:  # lives in another table, e.g. parent's in joined inheritance
            return TableColumnInfo()
        return TableColumnInfo(column_name=column.name, column_type=column.type.compile(dialect=self._dialect))
