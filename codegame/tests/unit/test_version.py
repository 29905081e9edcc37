import pytest

from codegame.client.base import CG_VERSION, Socket, is_version_compatible


class TestVersionCompatibility:
    def test_client_version(self):
        assert CG_VERSION == (0, 7)

    @pytest.mark.parametrize("version", ["0.7", "0.7.3", "0.7.0"])
    def test_same_minor_is_compatible(self, version):
        assert is_version_compatible(version) is True

    @pytest.mark.parametrize("version", ["0.6", "0.8", "1.7", "2", "", "x.y"])
    def test_other_versions_are_incompatible(self, version):
        assert is_version_compatible(version) is False


class TestSocketBase:
    def test_socket_needs_a_frame_decoder(self):
        with pytest.raises(TypeError, match="_decode_frame"):
            Socket("localhost:8080")
