"""
Unit tests for disk_types module.
"""

import pytest

from cloudvol.driver.disk_types import DiskTypeCache
from cloudvol.driver.exceptions import NotFoundError
from cloudvol.driver.services import DiskType


class TestDiskTypeCache:
    """Tests for DiskTypeCache.resolve."""

    @pytest.mark.unit
    def test_first_lookup_loads(self, service):
        """Test the first lookup lists disk types once."""
        cache = DiskTypeCache(service)

        disk_type = cache.resolve("ssd")

        assert disk_type.name == "ssd"
        assert disk_type.self_link.endswith("/zones/us-central1-f/diskTypes/ssd")
        assert service.disk_type_listings == 1

    @pytest.mark.unit
    def test_hit_does_not_reload(self, service):
        """Test cached types are served without listing again."""
        cache = DiskTypeCache(service)

        cache.resolve("ssd")
        cache.resolve("pd-standard")
        cache.resolve("ssd")

        assert service.disk_type_listings == 1

    @pytest.mark.unit
    def test_miss_reloads(self, service):
        """Test a miss on a populated cache reloads and finds new types."""
        cache = DiskTypeCache(service)
        cache.resolve("ssd")
        service.disk_types.append(DiskType(name="pd-balanced", self_link="diskTypes/pd-balanced"))

        disk_type = cache.resolve("pd-balanced")

        assert disk_type.self_link == "diskTypes/pd-balanced"
        assert service.disk_type_listings == 2

    @pytest.mark.unit
    def test_miss_after_reload_is_final(self, service):
        """Test a type missing after a reload raises without a second reload."""
        cache = DiskTypeCache(service)
        cache.resolve("ssd")

        with pytest.raises(NotFoundError, match="disk type 'hdd' not found"):
            cache.resolve("hdd")

        assert service.disk_type_listings == 2

    @pytest.mark.unit
    def test_unknown_on_first_lookup(self, service):
        """Test an unknown type on an empty cache lists exactly once."""
        cache = DiskTypeCache(service)

        with pytest.raises(NotFoundError):
            cache.resolve("hdd")

        assert service.disk_type_listings == 1

    @pytest.mark.unit
    def test_reload_replaces_mapping(self, service):
        """Test a reload drops types that no longer exist."""
        cache = DiskTypeCache(service)
        cache.resolve("ssd")
        service.disk_types = [DiskType(name="pd-extreme", self_link="diskTypes/pd-extreme")]

        cache.resolve("pd-extreme")

        with pytest.raises(NotFoundError):
            cache.resolve("ssd")
        assert service.disk_type_listings == 3
