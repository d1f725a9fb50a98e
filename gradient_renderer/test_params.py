"""
Tests for render parameters and the parameter store

Validation happens at the setter boundary: invalid input raises
InvalidParameter and leaves the current snapshot untouched.
"""

import dataclasses
import math

import numpy as np
import pytest

from gradient_renderer.errors import InvalidParameter
from gradient_renderer.params import (
    ParameterStore,
    RenderParameters,
    normalize_color,
    parse_hex_color,
    random_colors,
    to_hex,
)


@pytest.fixture
def store():
    return ParameterStore(rng=np.random.default_rng(1234))


# ============================================================================
# Colors
# ============================================================================

class TestColorParsing:
    """Hex and float color input"""

    def test_parse_hex(self):
        assert parse_hex_color('#ff8000') == (1.0, 128 / 255, 0.0)
        assert parse_hex_color('#FFFFFF') == (1.0, 1.0, 1.0)

    @pytest.mark.parametrize("value", ['#zzzzzz', 'red', '#12345', 'ff8000', '#ff80001', '', 42])
    def test_malformed_hex_rejected(self, value):
        with pytest.raises(InvalidParameter):
            normalize_color(value)

    def test_float_triples(self):
        assert normalize_color((0.1, 0.2, 0.3)) == (0.1, 0.2, 0.3)

    @pytest.mark.parametrize("value", [(0.1, 0.2), (0.1, 0.2, 1.5), (0.1, math.nan, 0.3), ('a', 'b', 'c')])
    def test_bad_triples_rejected(self, value):
        with pytest.raises(InvalidParameter):
            normalize_color(value)

    def test_to_hex_round_trip(self):
        assert to_hex(parse_hex_color('#0a1b2c')) == '#0a1b2c'

    def test_random_colors_are_valid(self):
        colors = random_colors(np.random.default_rng(7))
        assert len(colors) == 10
        for color in colors:
            assert len(color) == 3
            assert all(0.0 <= c <= 1.0 for c in color)

    def test_random_colors_small_values_padded(self):
        """Values below 0x100000 still produce six-digit hex colors"""
        class LowRng:
            def integers(self, low, high, size):
                return np.array([0x00000f] * size)

        colors = random_colors(LowRng())
        assert colors[0] == (0.0, 0.0, 15 / 255)


# ============================================================================
# Snapshot
# ============================================================================

class TestRenderParameters:
    """Snapshot construction and validation"""

    def test_defaults(self):
        params = RenderParameters()
        assert params.pattern_id == 0
        assert params.noise_amount == 0.5
        assert params.blur_amount == 0.2
        assert params.distortion_x == 0.3
        assert params.distortion_y == 0.3
        assert params.distortion_scale == 5.0
        assert params.color_count == 3
        assert len(params.colors) == 10
        assert len(params.color_stops) == 3

    def test_immutable(self):
        params = RenderParameters()
        with pytest.raises(dataclasses.FrozenInstanceError):
            params.noise_amount = 0.9

    def test_hex_colors_normalized(self):
        params = RenderParameters(colors=['#000000', '#ffffff'] + ['#808080'] * 8, color_count=2)
        assert params.color_stops == ((0.0, 0.0, 0.0), (1.0, 1.0, 1.0))

    @pytest.mark.parametrize("count", [0, 1, 11, 2.5, True])
    def test_invalid_color_count(self, count):
        with pytest.raises(InvalidParameter) as exc_info:
            RenderParameters(color_count=count)
        assert exc_info.value.field == 'color_count'

    def test_color_count_bounds_accepted(self):
        assert len(RenderParameters(color_count=2).color_stops) == 2
        assert len(RenderParameters(color_count=10).color_stops) == 10

    @pytest.mark.parametrize("field,value", [
        ('noise_amount', 1.5),
        ('blur_amount', -0.1),
        ('distortion_x', math.inf),
        ('distortion_y', math.nan),
        ('distortion_scale', 0.5),
        ('distortion_scale', 21.0),
        ('noise_amount', '0.5'),
    ])
    def test_out_of_domain_scalars(self, field, value):
        with pytest.raises(InvalidParameter):
            RenderParameters(**{field: value})

    def test_wrong_number_of_slots(self):
        with pytest.raises(InvalidParameter):
            RenderParameters(colors=['#000000'] * 9)

    def test_any_integer_pattern_accepted(self):
        """Unknown pattern ids are valid; they render turbulence"""
        assert RenderParameters(pattern_id=7).pattern_id == 7
        assert RenderParameters(pattern_id=-3).pattern_id == -3

    @pytest.mark.parametrize("pattern_id", ['3', 3.0, None, False])
    def test_non_integer_pattern_rejected(self, pattern_id):
        with pytest.raises(InvalidParameter):
            RenderParameters(pattern_id=pattern_id)

    def test_invalid_parameter_is_value_error(self):
        with pytest.raises(ValueError):
            RenderParameters(color_count=1)


# ============================================================================
# Store
# ============================================================================

class TestParameterStore:
    """Wholesale snapshot swaps"""

    def test_update_swaps_snapshot(self, store):
        before = store.current
        after = store.update(noise_amount=0.1, pattern_id=4)
        assert store.current is after
        assert after is not before
        assert after.noise_amount == 0.1
        assert after.pattern_id == 4
        assert before.noise_amount == 0.5

    def test_update_keeps_other_fields(self, store):
        before = store.current
        after = store.update(blur_amount=0.9)
        assert after.colors == before.colors
        assert after.distortion_scale == before.distortion_scale

    def test_color_count_one_rejected_and_snapshot_kept(self, store):
        before = store.current
        with pytest.raises(InvalidParameter):
            store.update(color_count=1)
        assert store.current is before

    def test_partial_invalid_update_applies_nothing(self, store):
        """A bad field rejects the whole update, valid fields included"""
        before = store.current
        with pytest.raises(InvalidParameter):
            store.update(noise_amount=0.9, color_count=11)
        assert store.current is before

    def test_unknown_field_rejected(self, store):
        with pytest.raises(InvalidParameter) as exc_info:
            store.update(speed=2.0)
        assert exc_info.value.field == 'speed'

    def test_set_color(self, store):
        params = store.set_color(2, '#00ff00')
        assert params.colors[2] == (0.0, 1.0, 0.0)

    def test_set_color_rejects_bad_input(self, store):
        before = store.current
        with pytest.raises(InvalidParameter):
            store.set_color(10, '#00ff00')
        with pytest.raises(InvalidParameter):
            store.set_color(0, 'green')
        assert store.current is before

    def test_set_colors_sets_count(self, store):
        before = store.current
        params = store.set_colors(['#ff0000', '#00ff00', '#0000ff', '#ffffff'])
        assert params.color_count == 4
        assert params.color_stops[0] == (1.0, 0.0, 0.0)
        assert params.colors[4:] == before.colors[4:]

    def test_set_colors_needs_two(self, store):
        with pytest.raises(InvalidParameter):
            store.set_colors(['#ff0000'])

    def test_regenerate_colors(self, store):
        store.update(color_count=5, noise_amount=0.2)
        before = store.current
        after = store.regenerate_colors()
        assert after.colors != before.colors
        assert after.color_count == 5
        assert after.noise_amount == 0.2
        assert after.pattern_id == before.pattern_id

    def test_seeded_store_repeatable(self):
        first = ParameterStore(rng=np.random.default_rng(99)).current.colors
        second = ParameterStore(rng=np.random.default_rng(99)).current.colors
        assert first == second
