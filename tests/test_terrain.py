"""
Tests for the Terrain facade.
"""

import threading

import pytest
import numpy as np
from py_terrain.core.diamond_square import GridSizeError
from py_terrain.core.sink import TextureSink
from py_terrain.core.terrain import DEFAULT_TEXTURE_SIZE, Terrain

TIMEOUT = 10


@pytest.fixture
def terrain():
    t = Terrain(size=33, roughness=1.0, seed="terrain")
    yield t
    t.close()


class TestTerrain:
    """Test generation hand-off to the texture."""

    def test_defaults(self):
        t = Terrain()
        try:
            assert t.size.w == DEFAULT_TEXTURE_SIZE
            assert t.texture.pixels.shape == (DEFAULT_TEXTURE_SIZE, DEFAULT_TEXTURE_SIZE)
            assert t.name == "Diamond-Square"
            assert t.needs_gpu is False
        finally:
            t.close()

    def test_invalid_size(self):
        with pytest.raises(GridSizeError):
            Terrain(size=100)

    def test_generate_uploads_texture(self, terrain):
        handle = terrain.generate()
        heights = handle.result(TIMEOUT)

        assert terrain.uploaded_generation == 1
        assert terrain.texture.upload_count == 1
        np.testing.assert_array_equal(terrain.texture.pixels.reshape(-1), heights)

    def test_completion_sees_uploaded_texture(self, terrain):
        seen = []
        done = threading.Event()

        def completion(handle):
            seen.append((handle.run_id, terrain.uploaded_generation, terrain.texture.upload_count))
            done.set()

        terrain.generate(completion=completion)

        assert done.wait(TIMEOUT)
        assert seen == [(1, 1, 1)]

    def test_roughness_property(self, terrain):
        terrain.roughness = 0.0
        assert terrain.roughness == 0.0
        terrain.generate().wait(TIMEOUT)
        assert np.all(terrain.texture.pixels == 0.0)

        with pytest.raises(ValueError):
            terrain.roughness = -0.5

    def test_statistics(self, terrain):
        terrain.generate(seed="stats").wait(TIMEOUT)
        stats = terrain.statistics()

        assert set(stats) == {"min", "max", "mean", "std"}
        assert stats["min"] <= stats["mean"] <= stats["max"]
        assert stats["std"] > 0.0

    def test_snapshot_before_any_run(self, terrain):
        snap = terrain.snapshot()
        assert snap.generation == 0
        assert (snap.width, snap.height) == (33, 33)
        assert np.all(snap.pixels == 0.0)

    def test_snapshot_is_a_copy(self, terrain):
        terrain.generate().wait(TIMEOUT)
        snap = terrain.snapshot()
        snap.pixels[:] = 99.0
        assert not np.any(terrain.texture.pixels == 99.0)


class TestTextureDoubleBuffer:
    """Test that readers never see a partly uploaded texture."""

    def test_reads_during_upload_see_previous_generation(self, monkeypatch):
        uploads = []
        halfway = threading.Event()
        resume = threading.Event()

        class PausingSink(TextureSink):
            def replace_region(self, width, height, data, bytes_per_row):
                uploads.append(self)
                if len(uploads) == 2:
                    rows = np.asarray(data).reshape(height, width)
                    self.pixels[: height // 2] = rows[: height // 2]
                    halfway.set()
                    resume.wait(TIMEOUT)
                super().replace_region(width, height, data, bytes_per_row)

        monkeypatch.setattr("py_terrain.core.terrain.TextureSink", PausingSink)

        terrain = Terrain(size=17, seed="first")
        try:
            first = terrain.generate().result(TIMEOUT)

            handle = terrain.generate(seed="second")
            assert halfway.wait(TIMEOUT)

            snap = terrain.snapshot()
            assert snap.generation == 1
            np.testing.assert_array_equal(snap.pixels.reshape(-1), first)
            np.testing.assert_array_equal(terrain.texture.pixels.reshape(-1), first)
            assert terrain.uploaded_generation == 1

            resume.set()
            second = handle.result(TIMEOUT)

            assert not np.array_equal(first, second)
            snap = terrain.snapshot()
            assert snap.generation == 2
            np.testing.assert_array_equal(snap.pixels.reshape(-1), second)
            assert uploads[0] is not uploads[1]
        finally:
            resume.set()
            terrain.close()
