import dataclasses
import logging
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from fetchpage.exceptions import InvalidPaginationParameter

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10

WindowSource = Literal["page", "offset", "default"]


class PaginationRequest(BaseModel):
    """
    Caller-supplied paging and sorting parameters. Every field is optional.

    Accepts snake_case or camelCase keys, so a query string like
    ``?page=3&pageSize=15&sort=-productionYear`` can be validated directly:

    >>> PaginationRequest.model_validate({"page": "3", "pageSize": "15"})
    PaginationRequest(page=3, page_size=15, limit=None, offset=None, sort=None, order=None)

    ``page_size`` and ``limit`` are synonyms.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    page: Optional[int] = None
    page_size: Optional[int] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    sort: Optional[str] = None
    order: Optional[str] = None

    @field_validator("page", "page_size", "limit", "offset", mode="before")
    @classmethod
    def integers_only(cls, value: Any) -> Any:
        # lax int parsing would turn True into 1 and 15.0 into 15
        if isinstance(value, (bool, float)):
            raise ValueError(f"Expected an integer, got {type(value).__name__}")
        return value

    @classmethod
    def parameter_names(cls) -> set[str]:
        """field names plus their camelCase aliases"""
        names = set(cls.model_fields)
        names.update(f.alias for f in cls.model_fields.values() if f.alias)
        return names

    @classmethod
    def coerce(
        cls, request: Union["PaginationRequest", Mapping[str, Any], None], **params
    ) -> "PaginationRequest":
        """
        build a request from another request, a mapping, keyword arguments or any mix of them.

        keyword arguments win over keys of `request`, whichever spelling either one uses.
        unknown keys of a `request` mapping are ignored (query strings carry filters too),
        unknown keyword arguments are rejected. type errors become InvalidPaginationParameter
        """
        known = cls.parameter_names()
        for name, value in params.items():
            if name not in known:
                raise InvalidPaginationParameter(
                    name, value, "Unknown pagination parameter."
                )

        if isinstance(request, PaginationRequest) and not params:
            return request
        try:
            if request is None:
                base = {}
            elif isinstance(request, PaginationRequest):
                base = request.model_dump(exclude_none=True)
            else:
                base = cls.model_validate(request).model_dump(exclude_none=True)
            if not params:
                return cls.model_validate(base)
            overrides = cls.model_validate(params).model_dump(exclude_unset=True)
            return cls.model_validate({**base, **overrides})
        except ValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "request"
            raise InvalidPaginationParameter(
                field, error.get("input"), error["msg"].rstrip(".") + "."
            ) from exc


@dataclasses.dataclass(frozen=True)
class PaginationWindow:
    """
    The canonical {limit, offset, page} triple.

    exactly one of page/offset came from the caller (see .source), the other is derived:
    offset == limit * (page - 1) and page == offset // limit + 1
    """

    limit: int
    offset: int
    page: int
    source: WindowSource = "default"


def resolve(
    request: Union[PaginationRequest, Mapping[str, Any], None] = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: Optional[int] = None,
    **params,
) -> PaginationWindow:
    """
    Resolve caller input into a PaginationWindow.

    Missing values default to limit=`default_limit`, page 1, offset 0. Supplied values are
    checked strictly, an out-of-range value raises InvalidPaginationParameter instead of
    being corrected:

    * limit < 1 (or above `max_limit`, when one is configured)
    * page < 1
    * offset < 0

    When both page and offset are supplied the page wins and the offset is recomputed from it.

    >>> resolve(limit=15, page=3)
    PaginationWindow(limit=15, offset=30, page=3, source='page')
    >>> resolve(limit=15, offset=45)
    PaginationWindow(limit=15, offset=45, page=4, source='offset')
    """
    request = PaginationRequest.coerce(request, **params)

    limit = request.limit
    if request.page_size is not None:
        if limit is not None and limit != request.page_size:
            raise InvalidPaginationParameter(
                "page_size",
                request.page_size,
                f"Conflicts with requested limit {limit}.",
            )
        limit = request.page_size
    if limit is None:
        limit = default_limit

    if limit < 1:
        raise InvalidPaginationParameter(
            "limit", limit, "Limit must be greater than 0."
        )
    if max_limit is not None and limit > max_limit:
        raise InvalidPaginationParameter(
            "limit", limit, f"Limit must not be greater than {max_limit}."
        )
    if request.page is not None and request.page < 1:
        raise InvalidPaginationParameter(
            "page", request.page, "Results start at page 1."
        )
    if request.offset is not None and request.offset < 0:
        raise InvalidPaginationParameter(
            "offset", request.offset, "The first row has offset 0."
        )

    if request.page is not None:
        window = PaginationWindow(
            limit=limit, offset=limit * (request.page - 1), page=request.page, source="page"
        )
        if request.offset is not None and request.offset != window.offset:
            logger.debug(
                "ignoring offset %d, page %d takes precedence (offset %d)",
                request.offset,
                request.page,
                window.offset,
            )
    elif request.offset is not None:
        window = PaginationWindow(
            limit=limit,
            offset=request.offset,
            page=request.offset // limit + 1,
            source="offset",
        )
    else:
        window = PaginationWindow(limit=limit, offset=0, page=1)

    logger.debug("resolved pagination window %s", window)
    return window
