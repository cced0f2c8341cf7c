"""Tests for appearance tables."""

import pytest

from avatar.core.appearance import (
    NEUTRAL_STYLE,
    WHITE,
    AppearanceError,
    AppearanceTable,
    Color,
    Style,
)
from avatar.core.avatar import ConversationState
from avatar.core.config import AppearanceConfig
from avatar.core.mood import Mood


class TestColor:
    """Tests for Color."""

    def test_from_hex(self):
        """Test parsing a hex color."""
        color = Color.from_hex("#FF0000")
        assert color == Color(1.0, 0.0, 0.0)

    def test_from_hex_without_hash(self):
        """Test the leading '#' is optional."""
        assert Color.from_hex("00ff00") == Color(0.0, 1.0, 0.0)

    def test_to_hex(self):
        """Test formatting back to uppercase hex."""
        assert Color.from_hex("#00a6a0").to_hex() == "#00A6A0"

    @pytest.mark.parametrize("value", ["#FFF", "#GGGGGG", "", "#1234567"])
    def test_invalid(self, value):
        """Test malformed colors raise AppearanceError."""
        with pytest.raises(AppearanceError):
            Color.from_hex(value)


class TestStyle:
    """Tests for Style."""

    def test_time_modifier(self):
        """Test the time modifier is the inverse of speed."""
        assert Style(WHITE, speed=2.0).time_modifier == 0.5
        assert Style(WHITE, speed=0.5).time_modifier == 2.0

    def test_still_time_modifier(self):
        """Test a zero speed gives a zero time modifier."""
        assert Style(WHITE, speed=0.0).time_modifier == 0.0

    def test_frozen(self):
        """Test styles cannot be changed."""
        with pytest.raises(AttributeError):
            NEUTRAL_STYLE.speed = 3.0


class TestAppearanceTable:
    """Tests for AppearanceTable."""

    def test_default_tables_complete(self):
        """Test the default configuration covers every state and mood."""
        config = AppearanceConfig()
        states = AppearanceTable.from_config(ConversationState, config.states)
        moods = AppearanceTable.from_config(Mood, config.moods)

        assert len(states) == len(ConversationState)
        assert len(moods) == len(Mood)
        assert states.color_for(ConversationState.ERROR) == Color(1.0, 0.0, 0.0)
        assert moods.speed_for(Mood.URGENT) == 2.0

    def test_strict_table_missing_entry(self):
        """Test a strict table refuses to build with a gap."""
        entries = dict(AppearanceConfig().states)
        del entries["THINKING"]

        with pytest.raises(AppearanceError, match="THINKING"):
            AppearanceTable.from_config(ConversationState, entries)

    def test_unknown_name(self):
        """Test an unknown member name is rejected."""
        with pytest.raises(AppearanceError):
            AppearanceTable.from_config(Mood, {"GRUMPY": {"color": "#000000"}}, strict=False)

    def test_names_are_case_insensitive(self):
        """Test lower-case names from YAML are accepted."""
        table = AppearanceTable.from_config(Mood, {"shy": {"color": "#F389AF"}}, strict=False)
        assert Mood.SHY in table

    def test_entry_defaults(self):
        """Test missing color and speed fall back to white and 1.0."""
        table = AppearanceTable.from_config(Mood, {"IDLE": {}}, strict=False)
        assert table.style_for(Mood.IDLE) == Style(WHITE, 1.0)

    def test_lenient_lookup_falls_back(self):
        """Test a lenient table answers gaps with the neutral style."""
        table = AppearanceTable.from_config(
            Mood, {"IDLE": {"color": "#F1F1F2", "speed": 1.0}}, strict=False
        )

        assert Mood.URGENT not in table
        assert table.style_for(Mood.URGENT) is NEUTRAL_STYLE
        assert table.color_for(Mood.URGENT) == WHITE
        assert table.speed_for(Mood.URGENT) == 1.0

    def test_table_is_read_only(self):
        """Test the underlying mapping cannot be modified."""
        table = AppearanceTable.from_config(Mood, AppearanceConfig().moods)
        with pytest.raises(TypeError):
            table._styles[Mood.IDLE] = NEUTRAL_STYLE
