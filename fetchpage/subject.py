import dataclasses
from typing import Any, Optional

from sqlalchemy import ColumnElement, FromClause, Join, Select, inspect

from fetchpage.exceptions import UnknownSubject


@dataclasses.dataclass(frozen=True)
class Subject:
    """
    What a select is paging over: the table rows are counted in, and the column that
    identifies one logical row of it.

    table_name is used to qualify bare sort columns, selectable is the FROM element
    (a Table, or an Alias for aliased() entities) that those columns are looked up on.
    entity is the mapped class (or aliased() class) of ORM selects, None for Core selects
    """

    table_name: str
    selectable: FromClause
    id_column: ColumnElement
    entity: Any = None

    def column(self, name: str) -> Optional[ColumnElement]:
        """
        the subject's column called `name`: a mapped attribute key first, so an attribute
        stored under a different column name still resolves, then a column of the selectable
        """
        if self.entity is not None and name in inspect(self.entity).mapper.column_attrs:
            return getattr(self.entity, name)
        if name in self.selectable.c:
            return self.selectable.c[name]
        return None


def subject_of(query: Select, id_attribute: Optional[str] = None) -> Subject:
    """
    Determine the Subject of a select.

    ORM selects use their first entity (select(Car), select(Car.id, Car.name), select(aliased(Car))).
    Core selects use the left-most table of their first FROM element.

    The id column is `id_attribute` when given, otherwise the (first) primary key column,
    otherwise a column named "id".
    """
    for description in query.column_descriptions:
        entity = description.get("entity")
        if entity is not None:
            return _entity_subject(entity, id_attribute)

    froms = query.get_final_froms()
    if not froms:
        raise UnknownSubject(f"cannot determine what {query} selects from")
    return _from_clause_subject(froms[0], id_attribute)


def _entity_subject(entity, id_attribute: Optional[str]) -> Subject:
    insp = inspect(entity)
    mapper = insp.mapper
    if insp.is_aliased_class:
        selectable = insp.selectable
    else:
        selectable = mapper.local_table

    if id_attribute is None:
        id_attribute = mapper.get_property_by_column(mapper.primary_key[0]).key
    id_column = getattr(entity, id_attribute, None)
    if id_column is None:
        raise UnknownSubject(f"{mapper.class_.__name__} has no attribute {id_attribute!r}")

    return Subject(
        table_name=mapper.local_table.name,
        selectable=selectable,
        id_column=id_column,
        entity=entity,
    )


def _from_clause_subject(from_clause: FromClause, id_attribute: Optional[str]) -> Subject:
    # the subject of "a JOIN b JOIN c" is a
    while isinstance(from_clause, Join):
        from_clause = from_clause.left

    table_name = getattr(from_clause, "name", None)
    if table_name is None:
        raise UnknownSubject(f"{from_clause!r} has no name to qualify columns with")

    if id_attribute is not None:
        id_column = from_clause.c.get(id_attribute)
    elif len(from_clause.primary_key):
        id_column = list(from_clause.primary_key)[0]
    else:
        id_column = from_clause.c.get("id")
    if id_column is None:
        raise UnknownSubject(
            f"{table_name} has no primary key and no {id_attribute or 'id'!r} column"
        )

    return Subject(table_name=table_name, selectable=from_clause, id_column=id_column)
