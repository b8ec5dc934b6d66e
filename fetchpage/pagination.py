import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from sqlalchemy import Select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session
from sqlalchemy.orm.interfaces import ORMOption

from fetchpage.api_response import PageResult
from fetchpage.exceptions import InvalidPaginationParameter
from fetchpage.filter import Filter, QueryModifier
from fetchpage.ordering import OrderSpec, parse_sort
from fetchpage.rewriter import RewrittenQuery, read_total, rewrite
from fetchpage.window import DEFAULT_LIMIT, PaginationRequest, PaginationWindow, resolve

logger = logging.getLogger(__name__)

Modifier = Optional[Union[QueryModifier, Filter]]
Request = Union[PaginationRequest, Mapping[str, Any], None]


class Pagination:
    def __init__(
        self,
        request: Request = None,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: Optional[int] = None,
        **params,
    ) -> None:
        """
        Paging and sorting for a single request. Parameters are checked here, so an invalid
        page, limit, offset or order raises InvalidPaginationParameter before any query runs.

        :param request: a PaginationRequest or a mapping of its fields (page, page_size/limit, offset,
            sort, order); keyword arguments are merged over it

        :param default_limit: page size when the request has none

        :param max_limit: largest page size a request may ask for, unlimited when None
        """
        self.request = PaginationRequest.coerce(request, **params)
        self.window: PaginationWindow = resolve(
            self.request, default_limit=default_limit, max_limit=max_limit
        )
        self.order: Optional[OrderSpec] = None
        if self.request.sort is not None:
            self.order = parse_sort(self.request.sort, self.request.order)
        elif self.request.order is not None:
            raise InvalidPaginationParameter(
                "order", self.request.order, "An order needs a sort column."
            )

    @property
    def limit(self) -> int:
        return self.window.limit

    @property
    def offset(self) -> int:
        return self.window.offset

    @property
    def page(self) -> int:
        return self.window.page

    def rewrite(
        self,
        query: Select,
        modifier: Modifier = None,
        *,
        id_attribute: Optional[str] = None,
        options: Sequence[ORMOption] = (),
    ) -> RewrittenQuery:
        return rewrite(
            query,
            self.window,
            self.order,
            modifier,
            id_attribute=id_attribute,
            options=options,
        )

    async def fetch_page(
        self,
        sessionmaker: Callable[[], AsyncSession],
        query: Select,
        modifier: Modifier = None,
        *,
        options: Sequence[ORMOption] = (),
        execution_options: Optional[Mapping[str, Any]] = None,
        id_attribute: Optional[str] = None,
    ) -> PageResult:
        """
        Fetch this page of `query` and its total.

        The row query and the count query run concurrently, each in its own session from
        `sessionmaker`. If either fails the whole call fails with that error and the other
        query is cancelled; there are no partial results.

        `options` (loader options such as selectinload()) and `execution_options` are
        passed to the row query as given.
        """
        rewritten = self.rewrite(
            query, modifier, id_attribute=id_attribute, options=options
        )
        tasks = [
            asyncio.ensure_future(
                _fetch_rows(
                    sessionmaker,
                    rewritten.fetch,
                    unique=bool(options),
                    execution_options=execution_options,
                )
            ),
            asyncio.ensure_future(_count_rows(sessionmaker, rewritten.count)),
        ]
        try:
            rows, total = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            # wait for the sibling to wind down and close its session
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return self._result(rows, total)

    def fetch_page_sync(
        self,
        sessionmaker: Callable[[], Session],
        query: Select,
        modifier: Modifier = None,
        *,
        options: Sequence[ORMOption] = (),
        execution_options: Optional[Mapping[str, Any]] = None,
        id_attribute: Optional[str] = None,
    ) -> PageResult:
        """
        fetch_page() for synchronous sessions. the two queries run concurrently on
        two worker threads, each with its own session
        """
        rewritten = self.rewrite(
            query, modifier, id_attribute=id_attribute, options=options
        )
        with ThreadPoolExecutor(max_workers=2) as executor:
            rows_future = executor.submit(
                _fetch_rows_sync,
                sessionmaker,
                rewritten.fetch,
                unique=bool(options),
                execution_options=execution_options,
            )
            total_future = executor.submit(
                _count_rows_sync, sessionmaker, rewritten.count
            )
            try:
                rows = rows_future.result()
            except BaseException:
                total_future.cancel()
                raise
            total = total_future.result()
        return self._result(rows, total)

    def _result(self, rows: list, total: int) -> PageResult:
        result = PageResult.from_window(self.window, rows, total)
        logger.debug(
            "fetched page %d (%d rows of %d total)",
            result.page,
            result.row_count,
            result.total,
        )
        return result


class Paginator:
    def __init__(
        self,
        sessionmaker: Optional[Callable[[], Union[AsyncSession, Session]]] = None,
        *,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: Optional[int] = None,
        id_attribute: Optional[str] = None,
    ) -> None:
        """
        Holds the settings shared by every page fetched through it: the sessionmaker,
        the default and maximum page size and the id attribute counted for totals
        (the mapped primary key when None).
        """
        self.sessionmaker = sessionmaker
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.id_attribute = id_attribute

    def pagination(self, request: Request = None, **params) -> Pagination:
        return Pagination(
            request,
            default_limit=self.default_limit,
            max_limit=self.max_limit,
            **params,
        )

    async def fetch_page(
        self,
        query: Select,
        request: Request = None,
        *,
        modifier: Modifier = None,
        options: Sequence[ORMOption] = (),
        execution_options: Optional[Mapping[str, Any]] = None,
        **params,
    ) -> PageResult:
        return await self.pagination(request, **params).fetch_page(
            self._sessionmaker(),
            query,
            modifier,
            options=options,
            execution_options=execution_options,
            id_attribute=self.id_attribute,
        )

    def fetch_page_sync(
        self,
        query: Select,
        request: Request = None,
        *,
        modifier: Modifier = None,
        options: Sequence[ORMOption] = (),
        execution_options: Optional[Mapping[str, Any]] = None,
        **params,
    ) -> PageResult:
        return self.pagination(request, **params).fetch_page_sync(
            self._sessionmaker(),
            query,
            modifier,
            options=options,
            execution_options=execution_options,
            id_attribute=self.id_attribute,
        )

    def _sessionmaker(self):
        if self.sessionmaker is None:
            raise ValueError(f"{self!r} has no sessionmaker to fetch pages with")
        return self.sessionmaker


async def fetch_page(
    sessionmaker: Callable[[], AsyncSession],
    query: Select,
    request: Request = None,
    *,
    modifier: Modifier = None,
    options: Sequence[ORMOption] = (),
    execution_options: Optional[Mapping[str, Any]] = None,
    id_attribute: Optional[str] = None,
    **params,
) -> PageResult:
    """
    Fetch one page of `query`:

    >>> await fetch_page(
    ...     async_session,
    ...     select(Car)
    ...     .join(Manufacturer, Car.manufacturer_id == Manufacturer.id)
    ...     .where(Manufacturer.country == "Sweden")
    ...     .group_by(Car.id),
    ...     limit=15,
    ...     page=3,
    ...     sort="-productionYear",  # same as sort="cars.productionYear", order="DESC"
    ... )
    PageResult(rows=[...], row_count=15, total=53, limit=15, page=3, offset=30)
    """
    return await Pagination(request, **params).fetch_page(
        sessionmaker,
        query,
        modifier,
        options=options,
        execution_options=execution_options,
        id_attribute=id_attribute,
    )


def fetch_page_sync(
    sessionmaker: Callable[[], Session],
    query: Select,
    request: Request = None,
    *,
    modifier: Modifier = None,
    options: Sequence[ORMOption] = (),
    execution_options: Optional[Mapping[str, Any]] = None,
    id_attribute: Optional[str] = None,
    **params,
) -> PageResult:
    return Pagination(request, **params).fetch_page_sync(
        sessionmaker,
        query,
        modifier,
        options=options,
        execution_options=execution_options,
        id_attribute=id_attribute,
    )


def _rows(result, query: Select, unique: bool) -> list:
    # select(Car) has a single entity and yields Car instances rather than 1-tuples
    if len(query.column_descriptions) == 1:
        result = result.scalars()
    if unique:
        result = result.unique()
    return list(result.all())


async def _fetch_rows(sessionmaker, query, *, unique, execution_options):
    async with sessionmaker() as session:
        result = await session.execute(query, execution_options=execution_options or {})
        return _rows(result, query, unique)


async def _count_rows(sessionmaker, query):
    async with sessionmaker() as session:
        result = await session.execute(query)
        return read_total(result.all())


def _fetch_rows_sync(sessionmaker, query, *, unique, execution_options):
    with sessionmaker() as session:
        result = session.execute(query, execution_options=execution_options or {})
        return _rows(result, query, unique)


def _count_rows_sync(sessionmaker, query):
    with sessionmaker() as session:
        return read_total(session.execute(query).all())
