from typing import Optional, Tuple

import attr


@attr.s(auto_attribs=True, frozen=True)
class TableColumnInfo:
    column_name: Optional[str] = None
    column_type: Optional[str] = None


@attr.s(auto_attribs=True, frozen=True)
class TableInfo:
    table_name: Optional[str] = None
    table_schema: Optional[str] = None
    columns: Tuple[TableColumnInfo, ...] = attr.ib(default=(), converter=tuple)
