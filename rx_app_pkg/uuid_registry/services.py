# rx_app_pkg/uuid_registry/services.py
# Conversion between the external 36 character UUIDs and their 16 byte storage form,
# plus the registry that hands out new ones.

import uuid as uuid_lib
from flask import current_app
from .. import db
from ..models import UuidRegistry

MAX_CREATE_ATTEMPTS = 10


def uuid_to_bytes(value):
    """
    Converts a canonical UUID string to its 16 byte form.
    Raises ValueError for anything that is not a canonical 36 character UUID.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 16:
            raise ValueError(f"Binary UUID must be 16 bytes, got {len(value)}")
        return bytes(value)
    if not isinstance(value, str) or len(value) != 36:
        raise ValueError(f"Not a canonical UUID string: {value!r}")
    parsed = uuid_lib.UUID(value)
    if str(parsed) != value.lower():
        raise ValueError(f"Not a canonical UUID string: {value!r}")
    return parsed.bytes


def uuid_to_string(value):
    if value is None:
        return None
    return str(uuid_lib.UUID(bytes=bytes(value)))


def try_uuid_to_bytes(value):
    """Like uuid_to_bytes, but malformed input comes back as None."""
    try:
        return uuid_to_bytes(value)
    except (ValueError, TypeError):
        return None


def is_valid_uuid(value):
    return try_uuid_to_bytes(value) is not None


def get_id_by_uuid(uuid_value, model, id_field='id'):
    """
    Resolves a string or binary UUID to the internal key stored in `id_field`.
    Returns None when the UUID is malformed or no row carries it.
    """
    uuid_bytes = try_uuid_to_bytes(uuid_value)
    if uuid_bytes is None:
        return None
    row = db.session.query(getattr(model, id_field)).filter(model.uuid == uuid_bytes).first()
    return row[0] if row else None


def create_uuid(table_name, model=None):
    """
    Generates a UUID that is not yet in the registry (nor on any `model` row) and records it
    against `table_name`.
    The registry row is added to the session; the caller commits.
    """
    for _ in range(MAX_CREATE_ATTEMPTS):
        candidate = uuid_lib.uuid4().bytes
        taken = db.session.get(UuidRegistry, candidate) is not None
        if not taken and model is not None:
            taken = model.query.filter_by(uuid=candidate).first() is not None
        if taken:
            current_app.logger.warning(f"[UuidRegistry] Collision generating uuid for {table_name}, regenerating.")
            continue
        db.session.add(UuidRegistry(uuid=candidate, table_name=table_name))
        return candidate
    raise RuntimeError(f"Unable to generate a unique uuid for {table_name}")


def create_missing_uuids(models):
    """
    Assigns UUIDs to rows that were created without one.
    Returns a dict of table name -> number of rows updated.
    """
    counts = {}
    for model in models:
        rows = model.query.filter(model.uuid.is_(None)).all()
        for row in rows:
            row.uuid = create_uuid(model.__tablename__, model)
        counts[model.__tablename__] = len(rows)
        if rows:
            current_app.logger.info(f"[UuidRegistry] Assigned {len(rows)} uuid(s) in {model.__tablename__}.")
    db.session.commit()
    return counts
