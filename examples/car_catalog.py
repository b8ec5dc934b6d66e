import asyncio
import dataclasses
import logging
import tempfile
from pathlib import Path
from typing import Optional

from sqlalchemy import ForeignKey, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, selectinload

from fetchpage import DataclassFilterMixin, Filter, PageResult, Paginator


class OrmBase(DeclarativeBase):
    pass


class ManufacturerOrm(OrmBase):
    __tablename__ = "manufacturers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str]
    country: Mapped[str]


class CarOrm(OrmBase):
    __tablename__ = "cars"

    id: Mapped[int] = mapped_column(primary_key=True)
    model: Mapped[str]
    productionYear: Mapped[int]
    manufacturer_id: Mapped[int] = mapped_column(ForeignKey("manufacturers.id"))

    manufacturer: Mapped[ManufacturerOrm] = relationship()


@dataclasses.dataclass
class CarFilter(DataclassFilterMixin, Filter):
    model: Optional[str] = None


def swedish_cars():
    return (
        select(CarOrm)
        .join(ManufacturerOrm, CarOrm.manufacturer_id == ManufacturerOrm.id)
        .where(ManufacturerOrm.country == "Sweden")
        .group_by(CarOrm.id)
    )


async def create_catalog(url: str) -> Paginator:
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(OrmBase.metadata.create_all)
        await conn.execute(
            ManufacturerOrm.__table__.insert(),
            [
                {"id": 1, "name": "Volvo", "country": "Sweden"},
                {"id": 2, "name": "Fiat", "country": "Italy"},
            ],
        )
        await conn.execute(
            CarOrm.__table__.insert(),
            [
                {
                    "id": i,
                    "model": "240" if i % 3 else "740",
                    "productionYear": 1974 + i % 20,
                    "manufacturer_id": 1 if i <= 53 else 2,
                }
                for i in range(1, 81)
            ],
        )
    return Paginator(async_sessionmaker(engine, expire_on_commit=False), max_limit=50)


async def main(url: Optional[str] = None) -> list[PageResult]:
    url = url or f"sqlite+aiosqlite:///{Path(tempfile.mkdtemp()) / 'cars.db'}"
    catalog = await create_catalog(url)

    pages = [
        # Same as sort="cars.productionYear", order="DESC"
        await catalog.fetch_page(
            swedish_cars(),
            limit=15,
            page=3,
            sort="-productionYear",
            options=[selectinload(CarOrm.manufacturer)],
        ),
        await catalog.fetch_page(swedish_cars(), {"limit": "15", "page": "4"}),
        await catalog.fetch_page(select(CarOrm), modifier=CarFilter(model="740")),
    ]
    for page in pages:
        print(page.model_dump(by_alias=True, exclude={"rows"}))
    return pages


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main())
