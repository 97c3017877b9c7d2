"""
Food listing routes: create with image upload, list latest, owner delete.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..auth import get_current_user
from ..database import get_db
from ..listings import build_listing, fields_from_form
from ..logging_config import api_logger, db_logger, upload_logger
from ..models.food import Food
from ..models.user import User
from ..responses import AuthorizationError, NotFoundError, ServerError, success
from ..uploads import ImageStorage, ValidatedImage, get_image_storage, validated_images

router = APIRouter(prefix="/api/foods", tags=["foods"])

LIST_LIMIT = 50


def _persist_food(
    db: Session,
    storage: ImageStorage,
    images: List[ValidatedImage],
    values: Dict[str, Any],
    owner_id: int,
) -> Food:
    """Publish the staged images and insert the listing, or neither."""
    try:
        with storage.stage(images) as batch:
            food = Food(**values, images=batch.publish(), created_by=owner_id)
            db.add(food)
            try:
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                db_logger.error("Failed to create food", error=e, owner_id=owner_id)
                raise ServerError()
    except OSError as e:
        upload_logger.error("Failed to store images", error=e, owner_id=owner_id)
        raise ServerError()

    db.refresh(food)
    return food


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_food(
    request: Request,
    current_user: User = Depends(get_current_user),
    images: List[ValidatedImage] = Depends(validated_images),
    storage: ImageStorage = Depends(get_image_storage),
    db: Session = Depends(get_db),
):
    """Create a listing from a multipart form with up to five images.

    Runs after authentication and upload validation; the form is already
    parsed and cached on the request by then.
    """
    form = await request.form()
    values = build_listing(fields_from_form(form), image_count=len(images))

    food = await run_in_threadpool(_persist_food, db, storage, images, values, current_user.id)
    api_logger.info("Food created", food_id=food.id, owner_id=current_user.id, images=len(images))

    return success("Food created successfully", food=food.to_dict())


@router.get("")
def list_foods(db: Session = Depends(get_db)):
    """Latest listings first."""
    foods = (
        db.query(Food)
        .order_by(Food.created_at.desc(), Food.id.desc())
        .limit(LIST_LIMIT)
        .all()
    )
    return success(foods=[f.to_dict() for f in foods])


@router.delete("/{food_id}")
def delete_food(
    food_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: ImageStorage = Depends(get_image_storage),
):
    """Delete a listing (owner only) and its image files."""
    food = db.query(Food).filter(Food.id == food_id).first()
    if not food:
        raise NotFoundError("Food item not found")

    if food.created_by != current_user.id:
        raise AuthorizationError("Not authorized to delete this food item")

    image_paths = list(food.images or [])
    try:
        db.delete(food)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        db_logger.error("Failed to delete food", error=e, food_id=food_id)
        raise ServerError()

    storage.delete(image_paths)
    return success("Food item deleted successfully")
