import dataclasses
from typing import Literal, Optional

from sqlalchemy import ColumnElement, Select, column, table

from fetchpage.exceptions import InvalidPaginationParameter
from fetchpage.subject import Subject, subject_of

Direction = Literal["ASC", "DESC"]


@dataclasses.dataclass(frozen=True)
class OrderSpec:
    """A single sort key: a (possibly table-qualified) column name and a direction"""

    column: str
    direction: Direction = "ASC"

    @property
    def is_qualified(self) -> bool:
        return "." in self.column

    def split(self) -> tuple[Optional[str], Optional[str], str]:
        """returns (schema, table, column); schema and table are None when not given"""
        parts = self.column.split(".")
        name = parts.pop()
        table_name = parts.pop() if parts else None
        schema = ".".join(parts) or None
        return schema, table_name, name

    def clause(self, subject: Optional[Subject] = None) -> ColumnElement:
        """
        build an ORDER BY element for this spec.

        columns of the subject table are looked up on the subject (mapped attribute keys first,
        then column names), so ordering works on aliased() entities too. anything else becomes a
        quoted table.column reference, the column name is never spliced into the SQL as raw text
        """
        schema, table_name, name = self.split()
        element = None
        if subject is not None and schema is None and table_name == subject.table_name:
            element = subject.column(name)
        if element is None and table_name is None:
            element = column(name)
        elif element is None:
            element = table(table_name, column(name), schema=schema).c[name]
        return element.desc() if self.direction == "DESC" else element.asc()


def parse_sort(sort: str, order: Optional[str] = None) -> OrderSpec:
    """
    Read a sort column and optional direction.

    The direction defaults to ASC. A leading hyphen on the column is shorthand for DESC
    and is stripped, so ``parse_sort("date", "DESC") == parse_sort("-date")``. An explicit
    `order` wins over the hyphen.
    """
    if not sort or not sort.lstrip("-"):
        raise InvalidPaginationParameter("sort", sort, "A sort column is required.")

    descending = sort.startswith("-")
    name = sort[1:] if descending else sort

    if order is None:
        direction = "DESC" if descending else "ASC"
    else:
        direction = order.upper()
        if direction not in ("ASC", "DESC"):
            raise InvalidPaginationParameter(
                "order", order, "Order must be 'ASC' or 'DESC'."
            )
    return OrderSpec(column=name, direction=direction)


def qualify(spec: OrderSpec, table_name: str) -> OrderSpec:
    """
    Prefix an unqualified column with `table_name`.

    Only the subject's table is ever used: in a joined select an unqualified column that
    belongs to another table has to be written as "table.column" by the caller.
    """
    if spec.is_qualified:
        return spec
    return dataclasses.replace(spec, column=f"{table_name}.{spec.column}")


def order_by(
    query: Select,
    sort: str,
    order: Optional[str] = None,
    *,
    id_attribute: Optional[str] = None,
) -> Select:
    """
    Return `query` with an ORDER BY appended for `sort`, qualified with the query's own table:

    >>> order_by(select(Car), "-productionYear")  # ORDER BY cars."productionYear" DESC
    """
    subject = subject_of(query, id_attribute)
    spec = qualify(parse_sort(sort, order), subject.table_name)
    return query.order_by(spec.clause(subject))
