"""Allow running the exporter with ``python -m tado_exporter``."""

from tado_exporter.cli import main


raise SystemExit(main())
