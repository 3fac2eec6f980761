import abc
import typing

from entity_framework_extensions.table_info import TableInfo


class MappingMetadataProvider(abc.ABC):
    @abc.abstractmethod
    def describe(self, mapped_type: typing.Type) -> typing.Optional[TableInfo]:
        """Returns a snapshot of the table backing `mapped_type`, or None when the type is not mapped.

        Failures of the underlying mapping runtime are not caught.
        """


def get_table_info(provider: MappingMetadataProvider, mapped_type: typing.Type) -> typing.Optional[TableInfo]:
    return provider.describe(mapped_type)
