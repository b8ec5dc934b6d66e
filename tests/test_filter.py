import dataclasses
from typing import Optional

import pytest
from sqlalchemy import select

from fetchpage import fetch_page
from fetchpage.exceptions import QueryModifierError
from fetchpage.filter import DataclassFilterMixin, Filter, apply_modifier, chain
from tests.models import Car


class BadSubclass(DataclassFilterMixin, Filter):
    pass


@dataclasses.dataclass
class NoFieldsDefined(DataclassFilterMixin, Filter):
    pass


@dataclasses.dataclass
class CarFilter(DataclassFilterMixin, Filter):
    color: Optional[str] = None
    manufacturer_id: Optional[int] = None


class RecentCars(Filter):
    def __init__(self, since: int):
        self.since = since

    def modify_query(self, query):
        return query.where(Car.productionYear >= self.since)


def test_dataclass_mixin_requires_dataclass_subclass():
    with pytest.raises(ValueError):
        BadSubclass()


def test_dataclass_mixin_requires_fields():
    with pytest.raises(ValueError):
        NoFieldsDefined()


def test_dataclass_filter_skips_unset_fields():
    query = CarFilter(color="red").modify_query(select(Car))
    assert "WHERE cars.color = " in str(query)
    assert "manufacturer_id" not in str(query).split("WHERE")[1]


def test_filter_is_a_modifier():
    query = apply_modifier(select(Car), RecentCars(2000))
    assert 'WHERE cars."productionYear" >= ' in str(query)


def test_chain_applies_in_order():
    calls = []

    def first(query):
        calls.append("first")
        return query.where(Car.color == "red")

    def second(query):
        calls.append("second")
        return query

    chained = chain(first, None, second, RecentCars(2000))
    query = chained(select(Car))
    assert calls == ["first", "second"]
    assert str(query).count("AND") == 1


def test_non_callable_modifier():
    with pytest.raises(QueryModifierError):
        apply_modifier(select(Car), {"where": "color"})


async def test_filtered_page(async_session):
    result = await fetch_page(
        async_session,
        select(Car),
        modifier=chain(CarFilter(color="blue"), RecentCars(2000)),
        sort="-id",
    )
    # blue cars are the even ids, cars 50 and up were built in 2000 or later
    assert result.total == 12
    assert [car.id for car in result.rows] == [72, 70, 68, 66, 64, 62, 60, 58, 56, 54]


@dataclasses.dataclass
class ColorFilter(DataclassFilterMixin, Filter):
    color: Optional[str] = None
    _note: Optional[str] = None


def test_dataclass_filter_skips_private_fields():
    query = ColorFilter(color="red", _note="internal").modify_query(select(Car))
    assert str(query).count("=") == 1
    assert "_note" not in str(query)
