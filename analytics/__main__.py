"""Allow analytics to be executable through `python -m analytics`."""
from analytics.cli import cli


if __name__ == "__main__":  # pragma: no cover
    cli(prog_name="analytics")
