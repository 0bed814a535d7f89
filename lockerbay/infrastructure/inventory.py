"""
Locker provisioning.

Lockers are provisioned outside the reservation flow. This module upserts locations, size
classes and lockers from a YAML inventory document:

    sizes:
      - size: SMALL
        base_price: "10.00"
    locations:
      - location_id: central
        name: Central Station
        lockers:
          - locker_id: central-a01
            locker_code: A01
            size: SMALL

Existing lockers keep their status; only descriptive fields are updated.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from sqlalchemy.orm import Session, sessionmaker

from lockerbay.core.entities.locker import LockerSize, LockerStatus
from lockerbay.infrastructure.models.models import LocationModel, LockerModel, LockerSizeModel

logger = logging.getLogger(__name__)


def provision_size(db: Session, size: LockerSize | str, base_price: Decimal | str, description: str | None = None) -> None:
    size = LockerSize(size)
    row = db.get(LockerSizeModel, size)
    if row is None:
        row = LockerSizeModel(size=size)
    row.base_price = Decimal(str(base_price))
    row.description = description
    db.add(row)
    db.flush()


def provision_location(db: Session, location_id: str, name: str, **fields: Any) -> None:
    row = db.get(LocationModel, location_id)
    if row is None:
        row = LocationModel(location_id=location_id)
    row.name = name
    row.address = fields.get("address")
    row.latitude = fields.get("latitude")
    row.longitude = fields.get("longitude")
    row.is_active = fields.get("is_active", True)
    row.popularity_score = fields.get("popularity_score", 0)
    db.add(row)
    db.flush()


def provision_locker(
        db: Session,
        *,
        locker_id: str,
        location_id: str,
        size: LockerSize | str,
        locker_code: str,
        status: LockerStatus | str | None = None,
) -> None:
    row = db.get(LockerModel, locker_id)
    if row is None:
        row = LockerModel(locker_id=locker_id, status=LockerStatus(status or LockerStatus.AVAILABLE))
    elif status is not None:
        row.status = LockerStatus(status)
    row.location_id = location_id
    row.size = LockerSize(size)
    row.locker_code = locker_code
    db.add(row)
    db.flush()


def apply_inventory(db: Session, document: dict[str, Any]) -> int:
    """Upsert everything in `document`. Returns the number of lockers seen."""
    for size in document.get("sizes") or []:
        provision_size(db, size["size"], size["base_price"], size.get("description"))

    lockers = 0
    for location in document.get("locations") or []:
        location = dict(location)
        location_lockers = location.pop("lockers", None) or []
        location_id = location.pop("location_id")
        provision_location(db, location_id, location.pop("name"), **location)
        for locker in location_lockers:
            provision_locker(
                db,
                locker_id=locker["locker_id"],
                location_id=location_id,
                size=locker["size"],
                locker_code=locker["locker_code"],
                status=locker.get("status"),
            )
            lockers += 1
    return lockers


def load_inventory_file(session_factory: sessionmaker, path: Path) -> int:
    with Path(path).open("r", encoding="utf-8") as f:
        document = yaml.safe_load(f) or {}

    db = session_factory()
    try:
        count = apply_inventory(db, document)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    logger.info("Provisioned %s locker(s) from %s", count, path)
    return count
