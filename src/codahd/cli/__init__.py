"""
codahd CLI - compositional log-ratio transforms for single-cell counts.

Commands:
    codahd transform  - CLR / IQLR / LVHA / mdCLR / manual / grouped / ILR transform
    codahd compare    - s/10000 pseudo-count CLR vs LogNorm CLR
"""

import argparse
import sys
from typing import List, Optional

from codahd import __version__


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for codahd."""
    parser = argparse.ArgumentParser(
        prog="codahd",
        description="Compositional log-ratio transforms for single-cell count matrices",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  transform  Log-ratio transform of a count matrix
  compare    Compare s/10000 pseudo-count CLR with LogNorm CLR

Examples:
  codahd transform --input counts.tsv --output results/clr
  codahd transform --input counts.tsv --output results/iqlr --method iqlr --pseudocount s/max
  codahd transform --input counts.tsv --output results/grp --method group-iqlr \\
      --metadata cells.csv --group-col cell_type
  codahd compare --input counts.tsv --output results/cmp --plot
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from codahd.cli import compare, transform
    transform.register_parser(subparsers)
    compare.register_parser(subparsers)

    argv = sys.argv[1:] if args is None else list(args)
    parsed_args = parser.parse_args(argv)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    parsed_args.cli_args = argv
    return parsed_args.func(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
