"""Tests for identity selection and lazy profile creation."""

from unittest.mock import patch

import pytest

from riskgen.config import SelectionMode
from riskgen.identity.resolver import IdentityResolver, load_identity_keys, select_identities
from riskgen.identity.store import ProfileStore
from riskgen.shared.errors import ConfigurationError
from riskgen.shared.randomness import RandomSource
from tests.conftest import make_profile


class TestSelectIdentities:
    def test_sequential_prefix(self):
        keys = ["a", "b", "c", "d"]
        assert select_identities(keys, 3, SelectionMode.SEQUENTIAL, RandomSource(1)) == [
            "a",
            "b",
            "c",
        ]

    def test_sequential_wraps(self):
        result = select_identities(["a", "b", "c"], 5, SelectionMode.SEQUENTIAL, RandomSource(1))
        assert result == ["a", "b", "c", "a", "b"]

    def test_random_length_and_membership(self):
        keys = ["a", "b", "c"]
        result = select_identities(keys, 50, SelectionMode.RANDOM, RandomSource(42))
        assert len(result) == 50
        assert set(result) <= set(keys)
        # with replacement over a 3-key pool, 50 draws must repeat
        assert len(set(result)) < len(result)

    def test_random_is_reproducible_with_seed(self):
        keys = [f"user-{i}" for i in range(20)]
        first = select_identities(keys, 10, SelectionMode.RANDOM, RandomSource(3))
        second = select_identities(keys, 10, SelectionMode.RANDOM, RandomSource(3))
        assert first == second

    def test_empty_pool_rejected(self):
        with pytest.raises(ConfigurationError):
            select_identities([], 3, SelectionMode.SEQUENTIAL, RandomSource(1))

    def test_zero_count(self):
        assert select_identities(["a"], 0, SelectionMode.RANDOM, RandomSource(1)) == []


class TestLoadIdentityKeys:
    def test_skips_blank_lines(self, data_dir):
        assert load_identity_keys(data_dir / "internal_Users") == ["alice", "bob", "carol"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_identity_keys(tmp_path / "nope")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "internal_Users"
        path.write_text("\n\n")
        with pytest.raises(ConfigurationError):
            load_identity_keys(path)


class TestEnsureProfiles:
    def test_creates_missing_profiles(self, tmp_path, generator):
        store = ProfileStore(tmp_path / "profiles.json")
        resolver = IdentityResolver(store, generator)

        profiles = resolver.ensure_profiles(["alice", "bob", "alice"])

        assert set(profiles) == {"alice", "bob"}
        alice = profiles["alice"]
        assert alice.key == "alice"
        assert alice.display_name in generator.pools.names
        assert alice.email.endswith(tuple(generator.pools.mail_domains))
        assert alice.source_ip in generator.pools.ips
        assert len(alice.device_id) == 24
        assert (tmp_path / "profiles.json").exists()

    def test_device_id_stable_across_runs(self, tmp_path, generator):
        path = tmp_path / "profiles.json"
        first = IdentityResolver(ProfileStore.load(path), generator).ensure_profiles(["alice"])

        reloaded = ProfileStore.load(path)
        second = IdentityResolver(reloaded, generator).ensure_profiles(["alice"])

        assert second["alice"].device_id == first["alice"].device_id
        assert second["alice"].email == first["alice"].email

    def test_saves_once_only_when_changed(self, tmp_path, generator):
        store = ProfileStore(tmp_path / "profiles.json")
        resolver = IdentityResolver(store, generator)

        with patch.object(ProfileStore, "save") as save:
            resolver.ensure_profiles(["alice", "bob", "carol"])
            assert save.call_count == 1

        store.put(make_profile("dave", agent=generator.user_agent))
        with patch.object(ProfileStore, "save") as save:
            resolver.ensure_profiles(["dave"])
            save.assert_not_called()

    def test_repairs_missing_device_id(self, tmp_path, generator):
        store = ProfileStore(tmp_path / "profiles.json")
        store.put(make_profile("erin", deviceID=None, agent=generator.user_agent))

        profiles = IdentityResolver(store, generator).ensure_profiles(["erin"])

        assert profiles["erin"].device_id is not None
        assert len(profiles["erin"].device_id) == 24

    def test_refreshes_user_agent_only(self, tmp_path, generator):
        store = ProfileStore(tmp_path / "profiles.json")
        original = make_profile("frank", agent="old-agent")
        store.put(original)

        profile = IdentityResolver(store, generator).ensure_profiles(["frank"])["frank"]

        assert profile.user_agent == generator.user_agent
        assert profile.device_id == "a1b2c3d4e5f6a1b2c3d4e5f6"
        assert profile.email == "Grace.Liu@gmail.com"

    def test_resolve_selects_and_creates(self, tmp_path, generator):
        store = ProfileStore(tmp_path / "profiles.json")
        resolver = IdentityResolver(store, generator)

        selected = resolver.resolve(["a", "b"], 3, SelectionMode.SEQUENTIAL)

        assert selected == ["a", "b", "a"]
        assert "a" in store
        assert "b" in store
