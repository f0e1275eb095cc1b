"""Allow ``python -m docrag``."""

from docrag.cli import main

raise SystemExit(main())
