"""Keyed upsert and delete helpers shared by webhook and bulk sync.

Every synced table has a unique key of ``(shop_id, shopify_<kind>_id)``.
Upserts overwrite the whole record with the incoming values, so whichever
payload is applied last wins. No commit is performed here; callers batch
commits.
"""

from __future__ import annotations

import uuid
from typing import Any, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

_NATIVE_UPSERT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _dialect_name(db: AsyncSession) -> str:
    return db.get_bind().dialect.name


async def upsert_row(
    db: AsyncSession,
    model: Any,
    values: dict[str, Any],
    key: Sequence[str],
    *,
    update: Sequence[str] | None = None,
) -> uuid.UUID:
    """Insert ``values`` or overwrite the row matching ``key``. Returns the row id.

    ``update`` limits which columns are overwritten on conflict; by default
    every non-key column in ``values`` is.
    """
    update_cols = [c for c in (update if update is not None else values) if c not in key]

    insert_fn = _NATIVE_UPSERT.get(_dialect_name(db))
    if insert_fn is not None:
        stmt = insert_fn(model).values(id=uuid.uuid4(), **values)
        set_ = {c: stmt.excluded[c] for c in update_cols}
        # ON CONFLICT skips Column.onupdate, so bump the timestamp by hand.
        if "updated_at" in model.__table__.c:
            set_["updated_at"] = func.now()
        if set_:
            stmt = stmt.on_conflict_do_update(index_elements=list(key), set_=set_)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(key))
        row_id = (await db.execute(stmt.returning(model.id))).scalar_one_or_none()
        if row_id is not None:
            return row_id
        # DO NOTHING returns no row for an existing key.
        return await _find_id(db, model, values, key)

    existing_id = await _find_id(db, model, values, key)
    if existing_id is None:
        obj = model(**values)
        db.add(obj)
        await db.flush()
        return obj.id
    obj = await db.get(model, existing_id)
    for col in update_cols:
        setattr(obj, col, values[col])
    await db.flush()
    return existing_id


async def _find_id(
    db: AsyncSession, model: Any, values: dict[str, Any], key: Sequence[str]
) -> uuid.UUID | None:
    stmt = select(model.id).where(*(getattr(model, c) == values[c] for c in key))
    return (await db.execute(stmt)).scalar_one_or_none()


async def delete_row(db: AsyncSession, model: Any, **key: Any) -> uuid.UUID | None:
    """Delete the row matching ``key`` and return its id, or None if absent."""
    conditions = [getattr(model, c) == v for c, v in key.items()]
    bind = db.get_bind()
    if bind.dialect.delete_returning:
        stmt = (
            delete(model)
            .where(*conditions)
            .returning(model.id)
            .execution_options(synchronize_session=False)
        )
        return (await db.execute(stmt)).scalars().first()

    row_id = (await db.execute(select(model.id).where(*conditions))).scalars().first()
    if row_id is not None:
        await db.execute(
            delete(model)
            .where(model.id == row_id)
            .execution_options(synchronize_session=False)
        )
    return row_id
