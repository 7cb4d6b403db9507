"""Allow running as `python -m rollout_cli`."""

from .main import main

main()
