"""
Food listing model.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, Boolean, Float, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


PRICE_RANGES = ("₹", "₹₹", "₹₹₹", "₹₹₹₹")
DEFAULT_PRICE_RANGE = "₹₹"
DIETARY_FLAGS = ("vegetarian", "vegan", "glutenfree", "halal", "kosher")
NUTRITION_FIELDS = ("calories", "protein", "carbs", "fat", "fiber")
MAX_TAGS = 10


def _utcnow():
    return datetime.now(timezone.utc)


class Food(Base):
    __tablename__ = "foods"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(120), nullable=False)
    description = Column(Text, nullable=False)
    cuisine_type = Column(String(60), nullable=False)
    vendor_name = Column(String(100), nullable=False)
    address = Column(String(200), nullable=False)
    city = Column(String(100), nullable=False)
    price = Column(Float, nullable=False)
    price_range = Column(String(8), default=DEFAULT_PRICE_RANGE, nullable=False)
    tags = Column(JSON, default=list)
    images = Column(JSON, nullable=False)  # ordered public paths, at least one

    # Dietary flags
    vegetarian = Column(Boolean, default=False)
    vegan = Column(Boolean, default=False)
    glutenfree = Column(Boolean, default=False)
    halal = Column(Boolean, default=False)
    kosher = Column(Boolean, default=False)

    # Nutrition, per serving; NULL when not provided
    calories = Column(Float, nullable=True)
    protein = Column(Float, nullable=True)
    carbs = Column(Float, nullable=True)
    fat = Column(Float, nullable=True)
    fiber = Column(Float, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships
    owner = relationship("User", back_populates="foods")

    def to_dict(self) -> dict:
        nutrition = {}
        for field in NUTRITION_FIELDS:
            value = getattr(self, field)
            if value is not None:
                nutrition[field] = value
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "cuisineType": self.cuisine_type,
            "vendorName": self.vendor_name,
            "address": self.address,
            "city": self.city,
            "price": self.price,
            "priceRange": self.price_range,
            "tags": list(self.tags or []),
            "images": list(self.images or []),
            "dietary": {flag: bool(getattr(self, flag)) for flag in DIETARY_FLAGS},
            "nutrition": nutrition,
            "createdBy": self.created_by,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
