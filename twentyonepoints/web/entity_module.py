from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class EntityFeature:
    """One entity's REST controller and the repositories behind it."""

    name: str
    controller: type
    repository: Optional[type] = None
    search_repository: Optional[type] = None

    @property
    def searchable(self) -> bool:
        return self.repository is not None and self.search_repository is not None


class EntityModule:
    """
    The fixed set of entity features activated at application startup.

    Declarative only: the application registers each feature's controller
    and keeps each searchable feature's index in step with its store.
    """

    def __init__(self, *features: EntityFeature):
        names = [feature.name for feature in features]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            raise ValueError(f"Entity features declared twice: {sorted(duplicates)}")
        self.features: Tuple[EntityFeature, ...] = tuple(features)

    @property
    def controllers(self) -> List[type]:
        return [feature.controller for feature in self.features]

    @property
    def searchable_features(self) -> List[EntityFeature]:
        return [feature for feature in self.features if feature.searchable]

    def __iter__(self):
        return iter(self.features)

    def __len__(self) -> int:
        return len(self.features)
