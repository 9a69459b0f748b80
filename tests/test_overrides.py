"""Tests for the environment-sourced override layer."""

import pytest

from settings_store.env import Environment
from settings_store.overrides import OverrideLayer

LIST_PROPERTY = "settingsOverride"


def _layer(**env: str) -> OverrideLayer:
    layer = OverrideLayer()
    layer.populate(Environment(env), LIST_PROPERTY)
    return layer


class TestPopulate:
    """Verify how overrides are read from the environment."""

    def test_no_listing_means_no_overrides(self) -> None:
        """Without the list property nothing is overridden."""
        assert len(_layer(volume="0.5")) == 0

    def test_listed_and_present(self) -> None:
        """Listed names present in the environment become overrides."""
        layer = _layer(settingsOverride="volume,name", volume="0.5", name="bob")
        assert dict(layer) == {"volume": "0.5", "name": "bob"}

    def test_listed_but_absent_is_skipped(self) -> None:
        """Listed names missing from the environment are ignored."""
        layer = _layer(settingsOverride="volume,ghost", volume="0.5")
        assert "ghost" not in layer
        assert len(layer) == 1

    def test_whitespace_and_empty_names(self) -> None:
        """Spaces around names and empty items are ignored."""
        layer = _layer(settingsOverride=" volume , ,", volume="0.5")
        assert dict(layer) == {"volume": "0.5"}

    def test_repopulate_starts_from_scratch(self) -> None:
        """A second populate replaces, not merges."""
        layer = _layer(settingsOverride="a", a="1")
        count = layer.populate(Environment({LIST_PROPERTY: "b", "b": "2"}), LIST_PROPERTY)
        assert count == 1
        assert dict(layer) == {"b": "2"}

    def test_view_is_read_only(self) -> None:
        """The exposed view cannot be mutated."""
        layer = _layer(settingsOverride="a", a="1")
        with pytest.raises(TypeError):
            layer.view["a"] = "2"  # type: ignore[index]
