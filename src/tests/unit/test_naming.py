"""Unit tests for VolumeNaming."""

import pytest

from hcvolume.driver.naming import MAX_NAME_LENGTH, VolumeNaming


@pytest.fixture
def naming() -> VolumeNaming:
    return VolumeNaming("docker")


class TestVolumeNaming:
    """Tests for prefixed/unprefixed name mapping."""

    @pytest.mark.parametrize("name", ["data", "a", "my-volume", "docker"])
    def test_round_trip(self, naming: VolumeNaming, name: str) -> None:
        assert naming.unprefixed_name(naming.prefixed_name(name)) == name

    def test_prefixed_name(self, naming: VolumeNaming) -> None:
        assert naming.prefixed_name("data") == "docker-data"

    def test_truncates_to_max_length(self, naming: VolumeNaming) -> None:
        prefixed = naming.prefixed_name("x" * 100)

        assert len(prefixed) == MAX_NAME_LENGTH
        assert prefixed == "docker-" + "x" * (MAX_NAME_LENGTH - len("docker-"))

    def test_unprefixed_name_without_prefix(self, naming: VolumeNaming) -> None:
        assert naming.unprefixed_name("other-data") == "other-data"

    def test_has_prefix(self, naming: VolumeNaming) -> None:
        assert naming.has_prefix("docker-data")
        assert not naming.has_prefix("dockerdata")
        assert not naming.has_prefix("swarm-data")

    def test_custom_prefix(self) -> None:
        naming = VolumeNaming("swarm")

        assert naming.prefix == "swarm"
        assert naming.prefixed_name("data") == "swarm-data"
