"""Override layer — read-only values that shadow the persisted store.

Overrides are rebuilt from the environment on every ``load``.  They
are never written to disk and never show up in ``keys()``; they only
win lookups.  Every override is a string, exactly as it appeared in the
environment.
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from settings_store.env import Environment


class OverrideLayer(Mapping[str, str]):
    """A read-only mapping of key to raw override string."""

    def __init__(self) -> None:
        """Create an empty layer."""
        self._values: dict[str, str] = {}

    def populate(self, environment: Environment, list_property: str) -> int:
        """Rebuild the layer from *environment*.

        *list_property* names a comma-separated list of property names;
        each listed name that is present in the environment becomes an
        override.  Whitespace around names is ignored, as are empty names.

        Args:
            environment: Source of property values.
            list_property: Name of the property listing override keys.

        Returns:
            The number of overrides now active.

        """
        self._values = {}
        listing = environment.get(list_property)
        if listing is None:
            return 0
        for raw_name in listing.split(","):
            name = raw_name.strip()
            value = environment.get(name) if name else None
            if value is not None:
                self._values[name] = value
        return len(self._values)

    @property
    def view(self) -> Mapping[str, str]:
        """Return a live read-only view of the overrides."""
        return MappingProxyType(self._values)

    def __getitem__(self, key: str) -> str:
        """Return the override for *key*."""
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        """Iterate over overridden keys."""
        return iter(self._values)

    def __len__(self) -> int:
        """Return the number of overrides."""
        return len(self._values)
