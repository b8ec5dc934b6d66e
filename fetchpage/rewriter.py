"""
Derive the two queries a page is built from: the windowed row query and the total count query.

Both are derived from the same (modified) base select. SQLAlchemy selects are generative, every
builder call returns a new select, so neither derived query shares clause state with the other or
with the caller's select.
"""
import dataclasses
import logging
from typing import Any, Optional, Sequence, Union

from sqlalchemy import Select, distinct, func, select
from sqlalchemy.orm.interfaces import ORMOption

from fetchpage.exceptions import PaginationError
from fetchpage.filter import Filter, QueryModifier, apply_modifier
from fetchpage.ordering import OrderSpec, qualify
from fetchpage.subject import Subject, subject_of
from fetchpage.window import PaginationWindow

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class RewrittenQuery:
    fetch: Select
    count: Select
    subject: Subject


def rewrite(
    query: Select,
    window: PaginationWindow,
    order: Optional[OrderSpec] = None,
    modifier: Optional[Union[QueryModifier, Filter]] = None,
    *,
    id_attribute: Optional[str] = None,
    options: Sequence[ORMOption] = (),
) -> RewrittenQuery:
    """
    Build the row query and the count query for one page of `query`.

    1. the modifier runs first; whatever it raises propagates before anything else happens
    2. row query: ORDER BY `order` (qualified with the subject table), loader `options`, LIMIT, OFFSET
    3. count query: see count_query()
    """
    base = apply_modifier(query, modifier)
    subject = subject_of(base, id_attribute)

    fetch = base
    if order is not None:
        fetch = fetch.order_by(qualify(order, subject.table_name).clause(subject))
    if options:
        fetch = fetch.options(*options)
    fetch = fetch.limit(window.limit).offset(window.offset)

    rewritten = RewrittenQuery(fetch=fetch, count=count_query(base, subject), subject=subject)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("row query: %s", rewritten.fetch)
        logger.debug("count query: %s", rewritten.count)
    return rewritten


def count_query(query: Select, subject: Subject) -> Select:
    """
    Turn `query` into a query for the number of distinct subject rows it matches.

    ORDER BY, LIMIT and OFFSET never change which rows match and are dropped. GROUP BY is dropped too:
    counting a grouped select counts groups, or returns one count per group. Instead the subject's
    id column is counted DISTINCT, which also collapses rows multiplied by one-to-many joins.

    A HAVING clause cannot outlive its GROUP BY, so grouped selects with one are counted as a
    subquery: SELECT count(*) FROM (<query>). Group such queries by the subject's id column
    for that count to mean rows rather than groups.
    """
    query = query.order_by(None).limit(None).offset(None)

    # noinspection PyProtectedMember
    if query._having_criteria:
        return select(func.count()).select_from(query.subquery())

    return query.group_by(None).with_only_columns(
        func.count(distinct(subject.id_column)), maintain_column_froms=True
    )


def read_total(result: Union[int, Sequence[Any], None]) -> int:
    """
    Read the total out of a count query result: a scalar is the total, a one-row result
    holds it in its only column, and no rows means nothing matched
    """
    if result is None:
        return 0
    if isinstance(result, int):
        return result
    if len(result) == 0:
        return 0
    if len(result) > 1:
        raise PaginationError(f"count query returned {len(result)} rows, expected 1")
    row = result[0]
    value = row if isinstance(row, int) else row[0]
    return int(value or 0)
