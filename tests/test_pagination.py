"""
Tests for page slicing

Run with: pytest tests/test_pagination.py -v
"""

import io

import pytest
from PIL import Image

from export.paginator import PageGeometry, Paginator, stitch_pages
from rendering.surface import RasterSurface
from utils.config import PipelineConfig
from utils.errors import RenderFailure


def striped_surface(width: int, height: int) -> RasterSurface:
    """Surface whose every row is distinguishable from its neighbours"""
    surface = RasterSurface(width, height)
    for y in range(height):
        surface.draw_line((0, y), (width - 1, y), fill=(y % 256, (y * 7) % 256, (y // 256) % 256))
    return surface


class TestPagePlan:
    """Page count and boundaries"""

    @pytest.fixture
    def paginator(self):
        return Paginator(page_height=100, remainder_threshold=10)

    def test_exact_multiple_has_no_blank_page(self, paginator):
        slices = paginator.plan(300)

        assert len(slices) == 3
        assert [(s.top, s.bottom) for s in slices] == [(0, 100), (100, 200), (200, 300)]

    def test_small_remainder_dropped(self, paginator):
        assert paginator.page_count(305) == 3
        assert paginator.page_count(310) == 3

    def test_remainder_above_threshold_gets_page(self, paginator):
        slices = paginator.plan(311)

        assert len(slices) == 4
        assert slices[-1].top == 300
        assert slices[-1].bottom == 311
        assert slices[-1].height == 11

    def test_short_content_gets_one_page(self, paginator):
        assert paginator.page_count(5) == 1
        assert paginator.page_count(99) == 1

    def test_count_matches_floor_plus_remainder_rule(self):
        for threshold in (0, 10, 40):
            paginator = Paginator(page_height=100, remainder_threshold=threshold)
            for height in range(1, 1000, 7):
                full, remainder = divmod(height, 100)
                expected = max(1, full + (1 if remainder > threshold else 0))
                assert paginator.page_count(height) == expected, (threshold, height)

    def test_offsets_are_negative_tops(self, paginator):
        slices = paginator.plan(250)

        assert [s.offset for s in slices] == [0, -100, -200]
        assert [s.index for s in slices] == [0, 1, 2]

    def test_empty_surface_rejected(self, paginator):
        with pytest.raises(RenderFailure):
            paginator.plan(0)

    def test_invalid_paginator(self):
        with pytest.raises(ValueError):
            Paginator(page_height=0)
        with pytest.raises(ValueError):
            Paginator(page_height=100, remainder_threshold=-1)


class TestPageSlicing:
    """Page images cut from a surface"""

    def test_pages_reassemble_to_surface(self):
        paginator = Paginator(page_height=100, remainder_threshold=0)

        with striped_surface(40, 250) as surface:
            pages = paginator.slice(surface)
            stitched = stitch_pages(pages)
            try:
                assert stitched.size == (40, 250)
                assert stitched.tobytes() == surface.rasterize().tobytes()
            finally:
                stitched.close()

    def test_pages_are_full_size(self):
        paginator = Paginator(page_height=100, remainder_threshold=0)

        with striped_surface(40, 250) as surface:
            pages = paginator.slice(surface)

        assert len(pages) == 3
        assert all((p.width, p.height) == (40, 100) for p in pages)
        assert [p.page_number for p in pages] == [1, 2, 3]
        assert pages[-1].content_height == 50

    def test_last_page_is_padded_with_white(self):
        paginator = Paginator(page_height=100, remainder_threshold=0)

        with striped_surface(40, 250) as surface:
            last = paginator.slice(surface)[-1]

        with Image.open(io.BytesIO(last.image_bytes)) as img:
            assert img.getpixel((5, 75)) == (255, 255, 255)

    def test_page_shows_the_right_rows(self):
        paginator = Paginator(page_height=100, remainder_threshold=0)

        with striped_surface(40, 250) as surface:
            source = surface.rasterize()
            pages = paginator.slice(surface)
            expected = source.getpixel((3, 137))

        with Image.open(io.BytesIO(pages[1].image_bytes)) as img:
            assert img.getpixel((3, 37)) == expected

    def test_dropped_sliver_not_on_any_page(self):
        paginator = Paginator(page_height=100, remainder_threshold=10)

        with striped_surface(40, 205) as surface:
            pages = paginator.slice(surface)
            stitched = stitch_pages(pages)
            try:
                assert len(pages) == 2
                assert stitched.tobytes() == surface.rasterize().crop((0, 0, 40, 200)).tobytes()
            finally:
                stitched.close()

    def test_iter_pages_yields_new_images(self):
        paginator = Paginator(page_height=100)

        with striped_surface(40, 150) as surface:
            pairs = list(paginator.iter_pages(surface))
            images = [img for _, img in pairs]
            try:
                assert [s.index for s, _ in pairs] == [0, 1]
                assert all(img is not surface.rasterize() for img in images)
            finally:
                for img in images:
                    img.close()

    def test_slice_closes_pages_when_encoding_fails(self, monkeypatch):
        paginator = Paginator(page_height=100)
        state = {'closed': False}
        original = paginator.iter_pages

        def tracked(surface):
            try:
                yield from original(surface)
            finally:
                state['closed'] = True

        def broken_save(self, *args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(paginator, 'iter_pages', tracked)
        monkeypatch.setattr(Image.Image, 'save', broken_save)

        with striped_surface(40, 250) as surface:
            with pytest.raises(OSError):
                paginator.slice(surface)

        assert state['closed']

    def test_stitch_needs_pages(self):
        with pytest.raises(ValueError):
            stitch_pages([])


class TestRasterSurface:
    """Surface lifetime"""

    def test_closed_after_with_block(self):
        with RasterSurface(10, 10) as surface:
            assert not surface.closed

        assert surface.closed
        with pytest.raises(RenderFailure):
            surface.rasterize()

    def test_invalid_size(self):
        with pytest.raises(RenderFailure) as exc_info:
            RasterSurface(0, 10)
        assert exc_info.value.stage == "allocate"

    def test_close_twice(self):
        surface = RasterSurface(10, 10)
        surface.close()
        surface.close()
        assert surface.closed


class TestPageGeometry:
    """Page size in surface pixels"""

    def test_a4_at_scale_two(self):
        geometry = PageGeometry.from_config(PipelineConfig(scale=2))

        assert geometry.width_px == round(210 * 96 / 25.4 * 2)
        assert geometry.height_px == round(297 * 96 / 25.4 * 2)
        assert geometry.remainder_threshold_px == round(10 * 96 / 25.4 * 2)

    def test_margins_shrink_printable_area(self):
        config = PipelineConfig(scale=1, margin_left_mm=10, margin_right_mm=10, margin_top_mm=5, margin_bottom_mm=5)
        geometry = PageGeometry.from_config(config)

        assert geometry.width_px == round(190 * 96 / 25.4)
        assert geometry.height_px == round(287 * 96 / 25.4)


if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
