# app/db/session.py
# Инициализация SQLAlchemy engine, фабрики сессий и границы транзакции.
# Поддерживает как Postgres, так и SQLite (для тестов/локального использования).

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    """Создаёт engine; для sqlite включает честные транзакции и внешние ключи."""
    if not url.startswith("sqlite"):
        # pool_pre_ping полезен для долгоживущих соединений с Postgres
        return create_engine(url, pool_pre_ping=True)

    db_engine = create_engine(url, connect_args={"check_same_thread": False})

    # pysqlite сам решает, когда слать BEGIN, и ломает SAVEPOINT/ROLLBACK.
    # Отключаем его логику и начинаем транзакцию явно.
    @event.listens_for(db_engine, "connect")
    def _sqlite_on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(db_engine, "begin")
    def _sqlite_on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return db_engine


DATABASE_URL = settings.DATABASE_URL

engine = create_db_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Граница одной логической операции: commit при успехе,
    rollback и повторный raise при любой ошибке.
    Все чтения внутри блока идут в той же транзакции, что и записи.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back transaction", exc_info=True)
        db.rollback()
        raise


def violates_constraint(exc: IntegrityError, *names: str) -> bool:
    """
    True, если IntegrityError вызван одним из перечисленных ограничений.
    Postgres отдаёт имя ограничения в diag, SQLite — только текст
    вида "UNIQUE constraint failed: orders.order_number", поэтому names
    может содержать и имя ограничения, и список колонок.
    """
    constraint = getattr(getattr(exc.orig, "diag", None), "constraint_name", None)
    if constraint is not None:
        return constraint in names
    message = str(exc.orig)
    return any(name in message for name in names)
