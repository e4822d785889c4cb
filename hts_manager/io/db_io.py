# hts_manager/io/db_io.py
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from hts_manager.config import config
from hts_manager.data_models import (
    ErrorRecord,
    ProductSnapshot,
    StoredClassification,
    UsageCounter,
)
from hts_manager.io.base import ProductCatalog, UsageStore

DATABASE_URL = config.database.url

engine = create_engine(DATABASE_URL, echo=False, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

Base = declarative_base()

USAGE_ROW_ID = 1


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite не хранит часовой пояс: пишем UTC, при чтении возвращаем его обратно
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    short_description = Column(Text, nullable=True)
    sku = Column(String, nullable=True, index=True)
    price = Column(String, nullable=True)
    weight = Column(String, nullable=True)
    is_published = Column(Boolean, default=True)

    # Метаданные классификации
    hts_code = Column(String, nullable=True, index=True)
    hts_confidence = Column(Float, nullable=True)
    hts_reasoning = Column(Text, nullable=True)
    hts_updated = Column(DateTime(timezone=True), nullable=True)
    country_of_origin = Column(String, nullable=True)

    # Последняя ошибка автоклассификации (для оператора)
    hts_error_kind = Column(String, nullable=True)
    hts_error_message = Column(Text, nullable=True)
    hts_error_context = Column(JSON, nullable=True)

    categories = relationship(
        "ProductCategory",
        order_by="ProductCategory.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ProductCategory(Base):
    __tablename__ = "product_categories"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String, nullable=False)


class UsageCounterDB(Base):
    __tablename__ = "usage_counter"

    id = Column(Integer, primary_key=True)
    used_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)


def make_session_factory(url: str) -> sessionmaker:
    """
    Отдельная фабрика сессий (например, sqlite:// в памяти для тестов).
    Таблицы создаются сразу.
    """
    kwargs: Dict[str, Any] = {"echo": False, "future": True}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)
    custom_engine: Engine = create_engine(url, **kwargs)
    init_db(custom_engine)
    return sessionmaker(bind=custom_engine, autoflush=False, autocommit=False, expire_on_commit=False)


def init_db(bind: Engine = engine) -> None:
    database = bind.url.database
    if bind.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind)


@contextmanager
def get_session(factory: Optional[Callable[[], Session]] = None) -> Iterator[Session]:
    session: Session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def product_to_snapshot(product: Product) -> ProductSnapshot:
    """
    Строит ProductSnapshot из записи products.
    """
    return ProductSnapshot(
        product_id=product.id,
        name=product.name or "",
        description=product.description or "",
        short_description=product.short_description or "",
        sku=product.sku or "",
        categories=tuple(c.name for c in product.categories),
        price=product.price,
        weight=product.weight,
    )


def add_product(
    session: Session,
    name: str,
    categories: Optional[List[str]] = None,
    is_published: bool = True,
    **fields: Any,
) -> Product:
    product = Product(name=name, is_published=is_published, **fields)
    product.categories = [
        ProductCategory(position=i, name=cat_name) for i, cat_name in enumerate(categories or [])
    ]
    session.add(product)
    session.flush()
    return product


def get_unclassified_product_ids(
    session: Session,
    limit: Optional[int] = None,
    placeholder_code: str = config.classifier.placeholder_code,
) -> List[int]:
    """
    Опубликованные товары без кода (пустой код или заглушка 9999.99.9999 считаются «без кода»).
    """
    stmt = (
        select(Product.id)
        .where(Product.is_published.is_(True))
        .where(
            or_(
                Product.hts_code.is_(None),
                Product.hts_code == "",
                Product.hts_code == placeholder_code,
            )
        )
        .order_by(Product.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(session.scalars(stmt))


def get_coverage_stats(
    session: Session,
    threshold: float = config.classifier.confidence_threshold,
    placeholder_code: str = config.classifier.placeholder_code,
) -> Dict[str, Any]:
    """
    Сводка для дашборда: сколько опубликованных товаров уже с кодом, сколько с низкой уверенностью.
    """
    published = Product.is_published.is_(True)
    total = session.scalar(select(func.count(Product.id)).where(published)) or 0
    with_codes = session.scalar(
        select(func.count(Product.id))
        .where(published)
        .where(Product.hts_code.is_not(None))
        .where(Product.hts_code != "")
        .where(Product.hts_code != placeholder_code)
    ) or 0
    low_confidence = session.scalar(
        select(func.count(Product.id))
        .where(published)
        .where(Product.hts_confidence.is_not(None))
        .where(Product.hts_confidence < threshold)
    ) or 0

    return {
        "total_published": total,
        "with_codes": with_codes,
        "without_codes": total - with_codes,
        "low_confidence": low_confidence,
        "coverage_percentage": round(with_codes / total * 100, 1) if total else 0.0,
    }


class SqlProductCatalog(ProductCatalog):
    """Каталог товаров поверх SQLAlchemy."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def _session(self):
        return get_session(self._session_factory)

    def get_product_snapshot(self, product_id: int) -> Optional[ProductSnapshot]:
        with self._session() as session:
            product = session.get(Product, product_id)
            if product is None:
                return None
            return product_to_snapshot(product)

    def write_classification(self, product_id: int, stored: StoredClassification) -> None:
        with self._session() as session:
            product = session.get(Product, product_id)
            if product is None:
                return
            product.hts_code = stored.hts_code
            product.hts_confidence = stored.confidence
            product.hts_reasoning = stored.rationale
            product.hts_updated = stored.updated_at
            product.country_of_origin = stored.country or None

    def read_classification(self, product_id: int) -> Optional[StoredClassification]:
        with self._session() as session:
            product = session.get(Product, product_id)
            if product is None or not product.hts_code:
                return None
            return StoredClassification(
                hts_code=product.hts_code,
                confidence=product.hts_confidence,
                rationale=product.hts_reasoning or "",
                updated_at=_as_utc(product.hts_updated),
                country=product.country_of_origin or "",
            )

    def clear_classification(self, product_id: int, country_of_origin: Optional[str] = None) -> None:
        with self._session() as session:
            product = session.get(Product, product_id)
            if product is None:
                return
            product.hts_code = None
            product.hts_confidence = None
            product.hts_reasoning = None
            product.hts_updated = None
            product.country_of_origin = country_of_origin

    def read_country_of_origin(self, product_id: int) -> Optional[str]:
        with self._session() as session:
            product = session.get(Product, product_id)
            return None if product is None else product.country_of_origin

    def write_error(self, product_id: int, record: ErrorRecord) -> None:
        with self._session() as session:
            product = session.get(Product, product_id)
            if product is None:
                return
            product.hts_error_kind = record.kind
            product.hts_error_message = record.message
            product.hts_error_context = record.context

    def read_error(self, product_id: int) -> Optional[ErrorRecord]:
        with self._session() as session:
            product = session.get(Product, product_id)
            if product is None or not product.hts_error_kind:
                return None
            return ErrorRecord(
                kind=product.hts_error_kind,
                message=product.hts_error_message or "",
                context=dict(product.hts_error_context or {}),
            )

    def clear_error(self, product_id: int) -> None:
        with self._session() as session:
            product = session.get(Product, product_id)
            if product is None:
                return
            product.hts_error_kind = None
            product.hts_error_message = None
            product.hts_error_context = None

    def is_published(self, product_id: int) -> bool:
        with self._session() as session:
            product = session.get(Product, product_id)
            return bool(product is not None and product.is_published)


class SqlUsageStore(UsageStore):
    """
    Счётчик использования в одной строке таблицы usage_counter.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self._session_factory = session_factory or SessionLocal

    @staticmethod
    def _ensure_row(session: Session) -> UsageCounterDB:
        row = session.get(UsageCounterDB, USAGE_ROW_ID)
        if row is None:
            row = UsageCounterDB(id=USAGE_ROW_ID, used_count=0, last_used_at=None)
            session.add(row)
            session.flush()
        return row

    def get_usage(self) -> UsageCounter:
        with get_session(self._session_factory) as session:
            row = self._ensure_row(session)
            return UsageCounter(used_count=row.used_count, last_used_at=_as_utc(row.last_used_at))

    def set_usage(self, counter: UsageCounter) -> None:
        with get_session(self._session_factory) as session:
            row = self._ensure_row(session)
            row.used_count = counter.used_count
            row.last_used_at = counter.last_used_at

    def reset_usage(self) -> None:
        with get_session(self._session_factory) as session:
            row = self._ensure_row(session)
            row.used_count = 0
            row.last_used_at = None

    def increment(self, limit: Optional[int]) -> Optional[int]:
        # UPDATE ... SET used_count = used_count + 1 WHERE used_count < limit
        with get_session(self._session_factory) as session:
            self._ensure_row(session)
            stmt = update(UsageCounterDB).where(UsageCounterDB.id == USAGE_ROW_ID)
            if limit is not None:
                stmt = stmt.where(UsageCounterDB.used_count < limit)
            stmt = stmt.values(
                used_count=UsageCounterDB.used_count + 1,
                last_used_at=datetime.now(timezone.utc),
            ).execution_options(synchronize_session=False)

            result = session.execute(stmt)
            if result.rowcount == 0:
                return None
            return session.scalar(
                select(UsageCounterDB.used_count).where(UsageCounterDB.id == USAGE_ROW_ID)
            )
