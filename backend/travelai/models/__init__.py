from travelai.models.cache import CacheEntry
from travelai.models.history import Preference, SearchHistory

__all__ = ["CacheEntry", "Preference", "SearchHistory"]
