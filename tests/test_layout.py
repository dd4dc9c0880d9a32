"""
Tests for icon and overlay layout.

Tests cover:
- Icon anchor targets, offsets and scale
- Icon asset resolution (overrides, aliases, naming patterns)
- Anchor fallbacks and z-order
- Tall-plant overlay placement and symmetric padding
"""

import pytest

from sprite_mutator.compositor.surface import Surface
from sprite_mutator.data import DrawOp, MutationMeta
from sprite_mutator.layout import (
    compute_icon_layout,
    fallback_anchor,
    find_icon_key,
    icon_z,
    is_tall_key,
    place_icon,
    place_tall_overlay,
    symmetric_padding,
)
from sprite_mutator.mutations import MUTATION_META


# =============================================================================
# Icon Layout
# =============================================================================


class TestComputeIconLayout:
    """Anchor-relative icon placement."""

    def test_vertical_sprite_keeps_its_own_anchor_y(self):
        layout = compute_icon_layout(100, 300, 0.5, 0.9, "sprite/plant/Reed", False)
        target_y = layout.anchor_y + layout.offset[1] / layout.height
        assert target_y == pytest.approx(0.9)
        assert layout.offset[1] == pytest.approx(0.0)

    def test_square_sprite_targets_default_height(self):
        layout = compute_icon_layout(256, 256, 0.5, 0.5, "sprite/plant/Carrot2", False)
        assert layout.offset == pytest.approx((0.0, (0.4 - 0.5) * 256))
        assert layout.icon_scale == pytest.approx(0.5)

    def test_species_exceptions_override_both_axes(self):
        layout = compute_icon_layout(200, 200, 0.5, 0.5, "sprite/plant/Banana", False)
        assert layout.offset == pytest.approx(((0.6 - 0.5) * 200, (0.6 - 0.5) * 200))

    def test_icon_scale_is_capped_and_boosted_for_tall(self):
        big = compute_icon_layout(1024, 1024, 0.5, 0.5, "sprite/plant/Big", False)
        tall = compute_icon_layout(128, 512, 0.5, 0.9, "sprite/tall-plant/Bamboo", True)
        assert big.icon_scale == pytest.approx(0.5 * 1.5)
        assert tall.icon_scale == pytest.approx(0.5 * (128 / 256) * 2)

    def test_place_icon_centres_on_icon_anchor(self):
        layout = compute_icon_layout(256, 256, 0.5, 0.5, "sprite/plant/Carrot2", False)
        x, y, w, h = place_icon(layout, 40, 40, (0.5, 0.5))
        assert (w, h) == (20.0, 20.0)
        assert x == pytest.approx(128 - 10)
        assert y == pytest.approx(128 - 25.6 - 10)


# =============================================================================
# Icon Resolution
# =============================================================================


class TestFindIconKey:
    """Most specific existing asset wins; misses are None."""

    def test_icon_suffix_is_preferred(self):
        known = {"sprite/mutation/WetIcon", "sprite/mutation/Wet"}
        assert find_icon_key("sprite/plant/Carrot", "Wet", False, MUTATION_META["Wet"], known) == "sprite/mutation/WetIcon"

    def test_tall_override_wins_when_present(self):
        known = {"sprite/mutation/Puddle", "sprite/mutation/Wet"}
        key = find_icon_key("sprite/tall-plant/Bamboo", "Wet", True, MUTATION_META["Wet"], known)
        assert key == "sprite/mutation/Puddle"

    def test_override_ignored_for_regular_sprites(self):
        known = {"sprite/mutation/Puddle", "sprite/mutation/Wet"}
        key = find_icon_key("sprite/plant/Carrot", "Wet", False, MUTATION_META["Wet"], known)
        assert key == "sprite/mutation/Wet"

    def test_tall_specific_patterns(self):
        known = {"sprite/mutation-overlay/FrozenTallPlantIcon", "sprite/mutation/Frozen"}
        key = find_icon_key("sprite/tall-plant/Cactus", "Frozen", True, MUTATION_META["Frozen"], known)
        assert key == "sprite/mutation-overlay/FrozenTallPlantIcon"

    def test_alias_is_tried(self):
        known = {"sprite/mutation/Amberlit"}
        key = find_icon_key("sprite/plant/Carrot", "Ambershine", False, MUTATION_META["Ambershine"], known)
        assert key == "sprite/mutation/Amberlit"

    def test_species_specific_pattern(self):
        known = {"sprite/mutation/Gold-Carrot"}
        assert find_icon_key("sprite/plant/Carrot", "Gold", False, None, known) == "sprite/mutation/Gold-Carrot"

    def test_no_match_returns_none(self):
        assert find_icon_key("sprite/plant/Carrot", "Gold", False, MUTATION_META["Gold"], set()) is None
        assert find_icon_key("sprite/plant/Carrot", "", False, None, {"sprite/mutation/Icon"}) is None


# =============================================================================
# Anchors and Z-Order
# =============================================================================


class TestAnchorsAndDepth:
    def test_tall_key_detection(self):
        assert is_tall_key("sprite/tall-plant/Bamboo")
        assert is_tall_key("sprite/TallPlant/Thing")
        assert not is_tall_key("sprite/plant/Carrot")

    def test_curated_tall_anchor(self):
        assert fallback_anchor("sprite/tall-plant/Bamboo") == (0.519573, 0.964063)

    def test_generic_fallbacks(self):
        assert fallback_anchor("sprite/tall-plant/Unknown") == (0.5, 0.96)
        assert fallback_anchor("sprite/plant/Carrot") == (0.5, 0.5)

    def test_floating_icons_are_topmost_even_on_tall_plants(self):
        assert icon_z(MutationMeta(floating_icon=True), True) == 10
        assert icon_z(MutationMeta(floating_icon=True), False) == 10

    def test_tall_icons_go_behind(self):
        assert icon_z(MutationMeta(), True) == -1
        assert icon_z(MutationMeta(), False) == 2


# =============================================================================
# Overlays and Padding
# =============================================================================


class TestOverlayPlacement:
    def test_tinted_overlay_is_top_anchored_at_natural_size(self):
        assert place_tall_overlay(100, 200, (0.5, 1.0), 50, 80, True) == (25.0, 0.0, 50, 80)

    def test_untinted_overlay_is_scaled_and_bottom_anchored(self):
        x, y, w, h = place_tall_overlay(100, 200, (0.5, 1.0), 40, 80, False)
        assert (w, h) == (90, 180)
        assert x == pytest.approx(50 - 45)
        assert y == pytest.approx(200 - 180 + 100)


class TestSymmetricPadding:
    def _op(self, x, y, w, h):
        return DrawOp(Surface.blank(1, 1), x, y, w, h, 2)

    def test_no_overflow_means_no_padding(self):
        assert symmetric_padding([self._op(10, 10, 20, 20)], 100, 100) == (0, 0)

    def test_left_overflow_pads_both_sides(self):
        assert symmetric_padding([self._op(-10, 5, 20, 20)], 100, 100) == (10, 0)

    def test_largest_overflow_wins(self):
        ops = [self._op(-4, -2, 10, 10), self._op(95, 96, 20, 10)]
        assert symmetric_padding(ops, 100, 100) == (15, 6)
