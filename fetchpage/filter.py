import abc
import dataclasses
from typing import Any, Callable, Optional, Union

import sqlalchemy

from fetchpage.exceptions import QueryModifierError

QueryModifier = Callable[[sqlalchemy.Select], sqlalchemy.Select]


def set_criteria(items: list[tuple[str, Any]]) -> dict:
    """dataclasses.asdict() factory keeping the fields a filter was given a value for"""
    return {
        name: value
        for name, value in items
        if value is not None and not name.startswith("_")
    }


class Filter(metaclass=abc.ABCMeta):
    """
    A Filter narrows down the rows a page is taken from. Subclass it and implement modify_query.

    Filters are query modifiers: they can be passed as `modifier=` to fetch_page(), and are applied
    to both the row query and the count query, so the total always describes the filtered rows.

    To prevent having to write your own __init__ boilerplate, use the DataclassFilterMixin:

    >>> @dataclasses.dataclass
    ... class CarFilter(DataclassFilterMixin, Filter):
    ...     color: str = None  # only cars of this color, when set
    """

    @abc.abstractmethod
    def modify_query(self, query: sqlalchemy.Select) -> sqlalchemy.Select:
        return query

    def __call__(self, query: sqlalchemy.Select) -> sqlalchemy.Select:
        return self.modify_query(query)


class DataclassFilterMixin:
    """
    Turns the fields of a @dataclass filter into equality criteria. List it before Filter in the
    bases so its modify_query satisfies Filter's abstract one.

    Fields left at None (and fields starting with "_") add no criteria. Range, wildcard or
    cross-table criteria need a modify_query of their own.
    """

    def modify_query(self, query: sqlalchemy.Select) -> sqlalchemy.Select:
        """
        add `<attribute> == <field value>` for every set field. filter_by() resolves the
        attributes on the last entity joined, or on the primary entity of an unjoined select
        """
        # noinspection PyDataclass
        criteria = dataclasses.asdict(self, dict_factory=set_criteria)
        return query.filter_by(**criteria)

    def __new__(cls, *args, **kwargs):
        """a filter without dataclass fields would silently match every row"""
        if not dataclasses.is_dataclass(cls):
            raise ValueError(f"{cls.__name__} needs the @dataclasses.dataclass decorator")
        if not dataclasses.fields(cls):
            raise ValueError(f"{cls.__name__} declares no filter fields")
        return super().__new__(cls)


def chain(*modifiers: Optional[Union[QueryModifier, Filter]]) -> QueryModifier:
    """combine several modifiers into one, applied left to right. None entries are skipped"""
    modifiers = [m for m in modifiers if m is not None]

    def chained(query: sqlalchemy.Select) -> sqlalchemy.Select:
        for modifier in modifiers:
            query = apply_modifier(query, modifier)
        return query

    return chained


def apply_modifier(
    query: sqlalchemy.Select, modifier: Optional[Union[QueryModifier, Filter]]
) -> sqlalchemy.Select:
    """
    run `modifier` against `query` and return the modified select.

    anything the modifier raises propagates unchanged. a modifier that does not hand back a select
    (for example one written for a mutable query builder, returning None) raises QueryModifierError
    """
    if modifier is None:
        return query
    if not callable(modifier):
        raise QueryModifierError(f"{modifier!r} is not a callable query modifier")
    modified = modifier(query)
    if not isinstance(modified, sqlalchemy.Select):
        raise QueryModifierError(
            f"query modifier {modifier!r} returned {type(modified).__name__}, expected a Select"
        )
    return modified
