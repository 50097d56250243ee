from sqlalchemy import and_, delete, select, update

from shortener.database import session_scope
from shortener.models.schema.db_config import Databases

_OPERATORS = {
    ">": lambda column, value: column > value,
    ">=": lambda column, value: column >= value,
    "<": lambda column, value: column < value,
    "<=": lambda column, value: column <= value,
    "=": lambda column, value: column == value,
    "!=": lambda column, value: column != value,
}


def _model(db: str):
    return getattr(Databases, db)


def _conditions(model, filters: dict) -> list:
    conditions = []
    for field, value in filters.items():
        if not hasattr(model, field):
            raise ValueError(f"{model.__name__} has no column '{field}'")
        column = getattr(model, field)
        # A tuple is an (operator, value) pair, e.g. ("<", now).
        if isinstance(value, tuple):
            operator, condition_value = value
            if operator not in _OPERATORS:
                raise ValueError(f"Unsupported operator '{operator}'")
            conditions.append(_OPERATORS[operator](column, condition_value))
        elif value is None:
            conditions.append(column.is_(None))
        else:
            conditions.append(column == value)
    return conditions


def delete_expired_records(db: str, now) -> int:
    model = _model(db)
    with session_scope() as session:
        result = session.execute(delete(model).where(model.expires_at <= now))
        return result.rowcount


def delete_records(db: str, **filters) -> int:
    model = _model(db)
    conditions = _conditions(model, filters)
    with session_scope() as session:
        result = session.execute(delete(model).where(*conditions))
        return result.rowcount


def add_record(db: str, **kwargs):
    model = _model(db)
    instance = model(**kwargs)
    with session_scope() as session:
        session.add(instance)
        session.flush()
    return instance


def select_records(db: str, *, order_by=None, descending: bool = False, **filters):
    model = _model(db)
    stmt = select(model).where(*_conditions(model, filters))
    if order_by is not None:
        column = getattr(model, order_by)
        stmt = stmt.order_by(column.desc() if descending else column)
    with session_scope() as session:
        return session.execute(stmt).scalars().all()


def select_one_or_none(db: str, **filters):
    model = _model(db)
    with session_scope() as session:
        return session.execute(
            select(model).where(and_(*_conditions(model, filters)))
        ).scalar_one_or_none()


def update_records(db: str, *, values: dict, **filters) -> int:
    model = _model(db)
    conditions = _conditions(model, filters)
    with session_scope() as session:
        result = session.execute(update(model).where(*conditions).values(**values))
        return result.rowcount
