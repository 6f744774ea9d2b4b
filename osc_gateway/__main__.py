"""Allow running the gateway with ``python -m osc_gateway``."""

from osc_gateway.cli import main

main()
