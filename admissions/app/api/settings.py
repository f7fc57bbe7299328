"""Configuration items: stages, grades, sources, counsellors, custom fields, organization profile."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from admissions.app.db.session import get_db
from admissions.app.models.configuration_item import ConfigurationItem
from admissions.app.schemas.configuration import (
    ConfigurationItemCreate,
    ConfigurationItemRead,
    ConfigurationItemUpdate,
    StageMove,
)
from admissions.app.services.configuration import ConfigType, load_snapshot

router = APIRouter(prefix="/settings", tags=["settings"])

PROFILE_NAME = "profile"


def _get_item(db: Session, item_id: int) -> ConfigurationItem:
    item = db.query(ConfigurationItem).filter(ConfigurationItem.id == item_id).first()
    if not item:
        raise HTTPException(status_code=404, detail="Configuration item not found")
    return item


def _next_sort_order(db: Session, config_type: str) -> int:
    current = db.query(func.max(ConfigurationItem.sort_order)).filter(ConfigurationItem.type == config_type).scalar()
    return (current or 0) + 1


@router.get("")
async def get_settings_snapshot(db: Session = Depends(get_db)):
    return load_snapshot(db).as_dict()


@router.get("/items", response_model=list[ConfigurationItemRead])
async def list_items(type: ConfigType | None = None, include_inactive: bool = False, db: Session = Depends(get_db)):
    query = db.query(ConfigurationItem)
    if type is not None:
        query = query.filter(ConfigurationItem.type == type.value)
    if not include_inactive:
        query = query.filter((ConfigurationItem.is_active.is_(None)) | (ConfigurationItem.is_active.is_(True)))
    return query.order_by(ConfigurationItem.sort_order.asc(), ConfigurationItem.id.asc()).all()


@router.post("/items", response_model=ConfigurationItemRead, status_code=201)
async def create_item(item_in: ConfigurationItemCreate, db: Session = Depends(get_db)):
    config_type = item_in.type.value
    stage_key = item_in.stage_key
    if item_in.type is ConfigType.STAGE and not stage_key:
        # Persist the key at creation so later renames keep it
        stage_key = item_in.name
    field_key = item_in.field_key
    if item_in.type is ConfigType.CUSTOM_FIELD and not field_key:
        field_key = item_in.name
    item = ConfigurationItem(
        type=config_type,
        name=item_in.name,
        field_key=field_key,
        stage_key=stage_key,
        is_active=item_in.is_active,
        sort_order=item_in.sort_order if item_in.sort_order is not None else _next_sort_order(db, config_type),
        value=item_in.value or None,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@router.put("/items/{item_id}", response_model=ConfigurationItemRead)
async def update_item(item_id: int, item_in: ConfigurationItemUpdate, db: Session = Depends(get_db)):
    item = _get_item(db, item_id)
    changes = item_in.model_dump(exclude_unset=True)
    # Leads store the stage key; a stage without one orphans them
    if item.type == ConfigType.STAGE.value and "stage_key" in changes and not (changes["stage_key"] or "").strip():
        raise HTTPException(status_code=400, detail="Stage key cannot be cleared")
    for field_name, value in changes.items():
        setattr(item, field_name, value)
    db.commit()
    db.refresh(item)
    return item


@router.delete("/items/{item_id}", response_model=ConfigurationItemRead)
async def delete_item(item_id: int, db: Session = Depends(get_db)):
    """Soft delete: the row stays so leads that reference it still resolve."""
    item = _get_item(db, item_id)
    item.is_active = False
    db.commit()
    db.refresh(item)
    return item


@router.post("/items/{item_id}/move", response_model=list[ConfigurationItemRead])
async def move_item(item_id: int, move: StageMove, db: Session = Depends(get_db)):
    item = _get_item(db, item_id)
    siblings = (
        db.query(ConfigurationItem)
        .filter(
            ConfigurationItem.type == item.type,
            (ConfigurationItem.is_active.is_(None)) | (ConfigurationItem.is_active.is_(True)),
        )
        .order_by(ConfigurationItem.sort_order.asc(), ConfigurationItem.id.asc())
        .all()
    )
    index = next((i for i, s in enumerate(siblings) if s.id == item.id), None)
    if index is None:
        raise HTTPException(status_code=400, detail="Inactive items cannot be moved")
    target = index - 1 if move.direction == "up" else index + 1
    if 0 <= target < len(siblings):
        # Renumber first so equal sort_order values still swap
        for position, sibling in enumerate(siblings):
            sibling.sort_order = position
        siblings[index].sort_order, siblings[target].sort_order = target, index
        db.commit()
    return sorted(siblings, key=lambda s: (s.sort_order, s.id))


@router.put("/organization-profile")
async def update_organization_profile(profile: dict[str, Any], db: Session = Depends(get_db)):
    item = (
        db.query(ConfigurationItem)
        .filter(ConfigurationItem.type == ConfigType.ORGANIZATION_PROFILE.value)
        .order_by(ConfigurationItem.id.asc())
        .first()
    )
    if item:
        item.value = profile
    else:
        item = ConfigurationItem(type=ConfigType.ORGANIZATION_PROFILE.value, name=PROFILE_NAME, value=profile)
        db.add(item)
    db.commit()
    return load_snapshot(db).organization_profile
