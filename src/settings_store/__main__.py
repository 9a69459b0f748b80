"""Allow ``python -m settings_store``."""

from settings_store.cli import main

raise SystemExit(main())
