"""Application cache – deterministic key builders and tag names."""
from __future__ import annotations

import hashlib
import json
from typing import Any

__all__ = ["CacheKey", "CacheKeys", "CacheTags"]


class CacheKey:
    """Factory for deterministic cache key strings."""

    @staticmethod
    def for_resource(resource_type: str, resource_id: str | int) -> str:
        return f"{resource_type}:id:{resource_id}"

    @staticmethod
    def for_query(query_type: str, **kwargs: object) -> str:
        return f"{query_type}:{CacheKey.digest(kwargs)}"

    @staticmethod
    def digest(params: Any) -> str:
        # deterministic: sort keys, JSON-encode, SHA-256 first 16 hex chars
        canonical = json.dumps(params, sort_keys=True, default=str)
        return hashlib.sha256(canonical.encode()).hexdigest()[:16]


class CacheTags:
    """Tag names shared by the entity key builders and invalidation calls."""

    DESTINATIONS = "destinations"
    EXPERIENCES = "experiences"
    PACKAGES = "packages"
    PACKAGE_ITEMS = "package_items"
    PACKAGE_ITEM_OPTIONS = "package_item_options"
    PACKAGE_EXPERIENCES = "package_experiences"
    PACKAGE_OPTION_MAPPINGS = "package_option_mappings"
    FAQS = "faqs"
    TESTIMONIALS = "testimonials"
    PARTNERS = "partners"
    BOOKINGS = "bookings"

    @classmethod
    def all(cls) -> list[str]:
        return [v for k, v in vars(cls).items() if k.isupper() and isinstance(v, str)]


class _CatalogKeys:
    """Keys for a listable, searchable catalog entity."""

    def __init__(self, namespace: str) -> None:
        self.namespace = namespace

    def all(self, filters: Any = None, sort: Any = None, limit: int | None = None) -> str:
        return f"{self.namespace}:all:{CacheKey.digest({'filters': filters, 'sort': sort, 'limit': limit})}"

    def by_id(self, entity_id: str | int) -> str:
        return CacheKey.for_resource(self.namespace, entity_id)

    def search(self, term: str, limit: int | None = None) -> str:
        return f"{self.namespace}:search:{term}:{limit or 20}"

    def _scoped(self, scope: str, value: str, limit: int | None) -> str:
        return f"{self.namespace}:{scope}:{value}:{limit or 'all'}"


class _DestinationKeys(_CatalogKeys):
    def featured(self, limit: int) -> str:
        return f"{self.namespace}:featured:{limit}"

    def by_country(self, country: str, limit: int | None = None) -> str:
        return self._scoped("country", country, limit)

    def countries(self) -> str:
        return f"{self.namespace}:countries"


class _ExperienceKeys(_CatalogKeys):
    def featured(self, limit: int) -> str:
        return f"{self.namespace}:featured:{limit}"

    def by_category(self, category: str, limit: int | None = None) -> str:
        return self._scoped("category", category, limit)

    def categories(self) -> str:
        return f"{self.namespace}:categories"


class _PackageKeys(_CatalogKeys):
    def featured(self, limit: int | None = None) -> str:
        return f"{self.namespace}:featured:{limit or 'all'}"

    def by_destination(self, destination_id: str, limit: int | None = None) -> str:
        return self._scoped("destination", destination_id, limit)


class _PackageItemKeys(_CatalogKeys):
    def by_type(self, item_type: str, limit: int | None = None) -> str:
        return self._scoped("type", item_type, limit)


class _PackageItemOptionKeys(_CatalogKeys):
    def by_package_item(self, package_item_id: str, limit: int | None = None) -> str:
        return self._scoped("package_item", package_item_id, limit)


class _MappingKeys:
    """Keys for a join table looked up from either side."""

    def __init__(self, namespace: str, left: str, right: str) -> None:
        self.namespace = namespace
        self._left = left
        self._right = right

    def by_left(self, left_id: str) -> str:
        return f"{self.namespace}:{self._left}:{left_id}"

    def by_right(self, right_id: str) -> str:
        return f"{self.namespace}:{self._right}:{right_id}"


class _FaqKeys:
    namespace = CacheTags.FAQS

    def all(self) -> str:
        return f"{self.namespace}:all"

    def by_category(self, category: str) -> str:
        return f"{self.namespace}:category:{category}"


class _TestimonialKeys:
    namespace = CacheTags.TESTIMONIALS

    def all(self) -> str:
        return f"{self.namespace}:all"

    def featured(self, limit: int) -> str:
        return f"{self.namespace}:featured:{limit}"


class CacheKeys:
    """Key builders for the booking platform's cached reads.

    Usage::

        key = CacheKeys.destinations.by_country("Nigeria", limit=10)
        await cache.get_or_set(key, load, tags=[CacheTags.DESTINATIONS])
    """

    destinations = _DestinationKeys(CacheTags.DESTINATIONS)
    experiences = _ExperienceKeys(CacheTags.EXPERIENCES)
    packages = _PackageKeys(CacheTags.PACKAGES)
    package_items = _PackageItemKeys(CacheTags.PACKAGE_ITEMS)
    package_item_options = _PackageItemOptionKeys(CacheTags.PACKAGE_ITEM_OPTIONS)
    package_experiences = _MappingKeys(CacheTags.PACKAGE_EXPERIENCES, "package", "experience")
    package_option_mappings = _MappingKeys(CacheTags.PACKAGE_OPTION_MAPPINGS, "package", "option")
    faqs = _FaqKeys()
    testimonials = _TestimonialKeys()
