"""Unit tests for member record resolution."""

import pytest
from pydantic import ValidationError

from teamtrack.teams.members import TeamMember, dump_members, find_member, load_member, load_members, split_members


class TestLoadMember:
    """Test both stored shapes resolve to TeamMember."""

    def test_legacy_name_string(self):
        member = load_member("Alice")
        assert member == TeamMember(name="Alice")
        assert member.device_id == ""

    def test_profile_object(self):
        member = load_member({"name": "Bob", "deviceId": "dev-1", "photo": "data:image/png;base64,AA"})
        assert member.name == "Bob"
        assert member.device_id == "dev-1"
        assert member.photo == "data:image/png;base64,AA"

    def test_profile_object_snake_case(self):
        assert load_member({"name": "Bob", "device_id": "dev-1"}).device_id == "dev-1"

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            load_member({"name": "", "deviceId": "dev-1"})


class TestLoadMembers:
    """Test array resolution."""

    def test_mixed_shapes(self):
        members = load_members(["Alice", {"name": "Bob", "deviceId": "dev-1"}])
        assert [m.name for m in members] == ["Alice", "Bob"]

    def test_malformed_entries_skipped(self):
        members = load_members(["Alice", 42, {"deviceId": "no-name"}, {"name": "Bob"}])
        assert [m.name for m in members] == ["Alice", "Bob"]

    def test_none_is_empty(self):
        assert load_members(None) == []

    def test_split_keeps_unreadable_entries(self):
        members, unreadable = split_members(["Alice", 42, {"deviceId": "no-name"}])
        assert [m.name for m in members] == ["Alice"]
        assert unreadable == [42, {"deviceId": "no-name"}]


class TestDumpAndFind:
    """Test canonical serialization and lookup."""

    def test_dump_uses_stored_shape(self):
        dumped = dump_members([load_member("Alice")])
        assert dumped == [{"name": "Alice", "deviceId": "", "photo": None}]

    def test_dump_appends_unreadable_entries_unchanged(self):
        dumped = dump_members([load_member("Alice")], [42, {"deviceId": "no-name"}])
        assert dumped[1:] == [42, {"deviceId": "no-name"}]

    def test_find_by_device_id(self):
        members = load_members(["Alice", {"name": "Bob", "deviceId": "dev-1"}])
        assert find_member(members, "dev-1") == 1
        assert find_member(members, "dev-2") is None

    def test_empty_device_id_never_matches_legacy_members(self):
        assert find_member(load_members(["Alice"]), "") is None
