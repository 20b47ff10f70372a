"""
Collection view engine: attaches distances to a fountain set, applies
category and text filters, and orders the result by a selectable key.

build_view() is a pure function of its inputs. CollectionView holds the
view state a presentation layer mutates through commands.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from src.data.schema import Coordinate, FountainCategory, FountainRecord, SortOption
from src.fountains.config import DEFAULT_RADIUS_M
from src.fountains.errors import FountainError
from src.fountains.geo import distance_between, format_distance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FountainView:
    """A fountain as shown to the caller, with its distance when known."""
    fountain: FountainRecord
    distance_m: Optional[float] = None

    @property
    def formatted_distance(self) -> Optional[str]:
        if self.distance_m is None:
            return None
        return format_distance(self.distance_m)


# ---- Pure pipeline steps ----

def attach_distances(
    fountains: Sequence[FountainRecord],
    user_location: Optional[Coordinate],
) -> List[FountainView]:
    if user_location is None:
        return [FountainView(f) for f in fountains]
    return [FountainView(f, distance_between(user_location, f.coordinate)) for f in fountains]


def matches_category(fountain: FountainRecord, category: FountainCategory) -> bool:
    return category == FountainCategory.ALL or fountain.category == category


def matches_search(fountain: FountainRecord, search_text: str) -> bool:
    """Case-insensitive substring match on name, address and description."""
    if not search_text:
        return True
    needle = search_text.casefold()
    return any(
        needle in field.casefold()
        for field in (fountain.name, fountain.address or "", fountain.description)
    )


def sort_views(views: List[FountainView], sort_option: SortOption) -> List[FountainView]:
    """
    Stable sort. Entries missing the sort attribute go last, in input order.
    """
    if sort_option == SortOption.DISTANCE:
        key = lambda v: (v.distance_m is None, v.distance_m or 0.0)
    elif sort_option == SortOption.NAME:
        key = lambda v: v.fountain.name
    elif sort_option == SortOption.RATING:
        key = lambda v: (v.fountain.rating is None, -(v.fountain.rating or 0.0))
    elif sort_option == SortOption.NEWEST:
        key = lambda v: (
            v.fountain.created_at is None,
            -v.fountain.created_at.timestamp() if v.fountain.created_at else 0.0,
        )
    else:
        raise ValueError(f"Unknown sort option: {sort_option}")
    return sorted(views, key=key)


def build_view(
    fountains: Sequence[FountainRecord],
    search_text: str = "",
    category: FountainCategory = FountainCategory.ALL,
    sort_option: SortOption = SortOption.DISTANCE,
    user_location: Optional[Coordinate] = None,
) -> List[FountainView]:
    """Distance, filter, then sort."""
    views = [
        v for v in attach_distances(fountains, user_location)
        if matches_category(v.fountain, category) and matches_search(v.fountain, search_text)
    ]
    return sort_views(views, sort_option)


# ---- Stateful view ----

class CollectionView:
    """
    View state over a fountain collection.

    Every command recomputes `visible`; nothing here is persisted.
    """

    def __init__(
        self,
        sort_option: SortOption = SortOption.DISTANCE,
        user_location: Optional[Coordinate] = None,
    ):
        self.fountains: List[FountainRecord] = []
        self.search_text = ""
        self.category = FountainCategory.ALL
        self.sort_option = sort_option
        self.user_location = user_location
        self.error_message: Optional[str] = None
        self.visible: List[FountainView] = []

    def filter_locations(self) -> List[FountainView]:
        self.visible = build_view(
            self.fountains,
            search_text=self.search_text,
            category=self.category,
            sort_option=self.sort_option,
            user_location=self.user_location,
        )
        return self.visible

    def set_fountains(self, fountains: Sequence[FountainRecord]) -> List[FountainView]:
        self.fountains = list(fountains)
        return self.filter_locations()

    def load_fountains(
        self,
        repository,
        center: Coordinate,
        radius_m: float = DEFAULT_RADIUS_M,
        refresh: bool = False,
    ) -> List[FountainView]:
        """
        Pull fountains from a repository. On failure the collection is
        emptied and error_message is set.
        """
        self.error_message = None
        try:
            if refresh:
                fountains = repository.refresh_fountains(center, radius_m)
            else:
                fountains = repository.fetch_fountains(center, radius_m)
        except FountainError as e:
            logger.warning("Could not load fountains: %s", e)
            self.error_message = str(e)
            fountains = []
        return self.set_fountains(fountains)

    def update_search_text(self, text: str) -> List[FountainView]:
        self.search_text = text or ""
        return self.filter_locations()

    def update_category(self, category: FountainCategory) -> List[FountainView]:
        self.category = FountainCategory(category)
        return self.filter_locations()

    def update_sort_option(self, option: SortOption) -> List[FountainView]:
        self.sort_option = SortOption(option)
        return self.filter_locations()

    def update_user_location(self, location: Optional[Coordinate]) -> List[FountainView]:
        self.user_location = location
        return self.filter_locations()

    def clear_filters(self) -> List[FountainView]:
        self.search_text = ""
        self.category = FountainCategory.ALL
        return self.filter_locations()

    def dismiss_error(self) -> None:
        self.error_message = None

    # ---- Helpers ----

    def fountains_by_category(self, category: FountainCategory) -> List[FountainRecord]:
        return [f for f in self.fountains if matches_category(f, category)]

    def nearby(self, within_m: float) -> List[FountainView]:
        """Fountains with a known distance of at most within_m, nearest first."""
        views = attach_distances(self.fountains, self.user_location)
        close = [v for v in views if v.distance_m is not None and v.distance_m <= within_m]
        return sort_views(close, SortOption.DISTANCE)

    def nearest(self) -> Optional[FountainView]:
        if self.user_location is None or not self.fountains:
            return None
        return sort_views(attach_distances(self.fountains, self.user_location), SortOption.DISTANCE)[0]
