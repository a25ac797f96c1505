from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from twentyonepoints.data import Column, Entity, Field, Id


@Entity(table="jhi_user")
@dataclass
class User:
    """An application user, mirrored into the search index."""

    id: Optional[int] = Id()
    login: str = Column(default="", max_length=50)
    first_name: Optional[str] = Column(max_length=50)
    last_name: Optional[str] = Column(max_length=50)
    email: Optional[str] = Column(max_length=100)
    image_url: Optional[str] = Column(max_length=256)
    activated: bool = Column(default=False)
    lang_key: Optional[str] = Column(max_length=10)
    authorities: List[str] = Column(default_factory=list)
    created_date: Optional[datetime] = Field(update_on_create=True)
    last_modified_date: Optional[datetime] = Field(update_on_save=True)
