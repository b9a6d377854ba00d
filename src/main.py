import sys
import logging

from csv_io import MalformedInput, write_accounts
from payments_engine import PaymentsEngine


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    argv = sys.argv if argv is None else argv
    if len(argv) != 2:
        print("Usage: python main.py <transactions.csv> > accounts.csv", file=sys.stderr)
        return 1

    configure_logging()

    filepath = argv[1]
    engine = PaymentsEngine()
    try:
        snapshots = engine.process_file(filepath)
    except (OSError, UnicodeDecodeError, MalformedInput) as e:
        print(f"Error: cannot read {filepath}: {e}", file=sys.stderr)
        return 1

    write_accounts(snapshots, sys.stdout)
    print(engine.stats, file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
