"""
codahd transform command - log-ratio transform of a count matrix.

Usage:
    codahd transform --input counts.tsv --output results/pbmc_clr
    codahd transform --input counts.tsv --output results/pbmc_iqlr --method iqlr --pseudocount s/max
    codahd transform --input counts.tsv --output results/grouped --method group-lvha \\
        --metadata cells.csv --group-col cell_type
    codahd transform --config iqlr.yaml --output results/override

Outputs:
    {output}.data.csv     transformed matrix (features × samples; ILR: balances × samples)
    {output}.params.json  parameters, input/output shapes and reference diagnostics
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

import numpy as np

from codahd import __version__
from codahd.cli._validators import _non_negative_float, _positive_float, _positive_int
from codahd.coda.config import LogNormConfig, PseudocountConfig
from codahd.coda.ilr import ILR_BASES
from codahd.coda.reference import METHOD_NAMES, ReferenceSelection, parse_method
from codahd.coda.transformer import LogRatioTransform, TransformConfig, transform_with_reference
from codahd.core.errors import CodaError
from codahd.io.loaders import load_matrix
from codahd.io.metadata import attach_metadata, load_sample_metadata
from codahd.io.writers import write_matrix
from codahd.utils.fileio import atomic_write_json

logger = logging.getLogger(__name__)

PSEUDOCOUNT_CHOICES = ["s/gm", "s/max", "s/10000", "manual"]


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the transform subcommand."""
    parser = subparsers.add_parser(
        "transform",
        help="CLR-family / ILR transform of a count matrix",
        description="Compositional log-ratio transform (CLR, IQLR, LVHA, mdCLR, manual, "
                    "groupIQLR, groupLVHA, ILR) of a gene-by-cell count matrix"
    )

    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="Path to YAML/JSON config file (optional, CLI args override config values)")

    parser.add_argument("--input", "-i", type=Path, required=False,
                        help="Input count matrix (genes x cells; TSV/CSV, delimiter auto-detected)")
    parser.add_argument("--output", "-o", type=Path, required=False,
                        help="Output base path (without extension)")
    parser.add_argument("--method", "-m", default="clr",
                        help=f"Reference method: {', '.join(METHOD_NAMES)} (default: clr). "
                             "Case-insensitive; '-' and '_' are ignored (group-iqlr)")

    zero = parser.add_argument_group("zero handling")
    zero.add_argument("--pseudocount", default="s/gm",
                      help=f"Pseudo-count mode: {', '.join(PSEUDOCOUNT_CHOICES)}, or a number "
                           "(manual value). Default: s/gm")
    zero.add_argument("--pseudocount-value", type=_positive_float, default=None,
                      help="Pseudo-count value for --pseudocount manual")
    zero.add_argument("--lognorm", action="store_true", default=False,
                      help="Use library-size log-normalization instead of a pseudo-count")
    zero.add_argument("--scale-factor", type=_positive_float, default=None,
                      help="LogNorm target library size (default: 10000)")
    zero.add_argument("--already-log-normalized", action="store_true", default=False,
                      help="Input already holds log-normalized values (implies --lognorm)")

    ref = parser.add_argument_group("reference selection")
    ref.add_argument("--metadata", type=Path, default=None,
                     help="Per-cell annotation table (first column = cell id unless --sample-col)")
    ref.add_argument("--sample-col", default=None,
                     help="Cell id column of --metadata")
    ref.add_argument("--group-col", default=None,
                     help="Metadata column with group labels (group-iqlr / group-lvha)")
    ref.add_argument("--features", nargs="+", default=None,
                     help="Reference features for --method manual")
    ref.add_argument("--ilr-basis", choices=list(ILR_BASES), default=None,
                     help="ILR basis (default: pivot)")
    ref.add_argument("--max-iter", type=_positive_int, default=None,
                     help="Iteration cap for iqlr/lvha/mdclr (default: 100)")
    ref.add_argument("--tol", type=_non_negative_float, default=None,
                     help="Reference tolerance for the fixed-point test (default: 1e-10)")

    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log every refinement iteration")

    parser.set_defaults(func=run_transform)


def build_transform_config(args: argparse.Namespace) -> TransformConfig:
    """
    Translate parsed (and config-merged) arguments into a TransformConfig.

    Raises:
        InvalidConfigError: Inconsistent or invalid options
    """
    method_params = dict(getattr(args, 'method_params', None) or {})
    if args.max_iter is not None:
        method_params['max_iter'] = args.max_iter
    if args.tol is not None:
        method_params['tol'] = args.tol
    if args.features:
        method_params['features'] = tuple(args.features)
    if args.group_col:
        method_params['groups'] = args.group_col
    if args.ilr_basis:
        method_params['basis'] = args.ilr_basis
    method = parse_method(args.method, **method_params)

    if args.pseudocount_value is not None:
        pseudocount = PseudocountConfig(mode=args.pseudocount, value=args.pseudocount_value)
    else:
        pseudocount = PseudocountConfig.parse(args.pseudocount)

    lognorm = None
    if args.lognorm or args.already_log_normalized:
        lognorm = LogNormConfig(
            is_log_normalized=bool(args.already_log_normalized),
            scale_factor=args.scale_factor if args.scale_factor is not None else 10000.0,
        )

    return TransformConfig(method=method, pseudocount=pseudocount, lognorm=lognorm)


def _reference_summary(selection: ReferenceSelection) -> dict:
    n_ref = selection.n_reference_features
    return {
        'method': selection.method,
        'n_iterations': selection.n_iterations,
        'n_reference_features': {
            'min': int(n_ref.min()),
            'median': float(np.median(n_ref)),
            'max': int(n_ref.max()),
        },
    }


def run_transform(args: argparse.Namespace) -> int:
    """Execute the transform command."""
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    if args.config:
        from codahd.cli.config import load_config, merge_config_with_args, validate_config

        logger.info(f"Loading configuration from: {args.config}")
        try:
            config = load_config(args.config)
            validate_config(config)
            args = merge_config_with_args(config, args, getattr(args, 'cli_args', sys.argv[1:]))
        except (FileNotFoundError, ValueError) as e:
            print(f"ERROR: Config file error: {e}")
            return 1

    if not args.input:
        print("ERROR: --input is required (via CLI or config file)")
        return 1
    if not args.output:
        print("ERROR: --output is required (via CLI or config file)")
        return 1

    start_time = datetime.now()

    try:
        transform_config = build_transform_config(args)

        matrix = load_matrix(args.input)
        if args.metadata:
            metadata = load_sample_metadata(args.metadata, sample_col=args.sample_col)
            matrix = attach_metadata(matrix, metadata)

        transform = LogRatioTransform(transform_config)
        errors = transform.validate(matrix)
        if errors:
            for error in errors:
                print(f"ERROR: {error}")
            return 1

        result, selection = transform_with_reference(matrix, transform_config)

        data_path = write_matrix(result, args.output)
        params_path = Path(str(args.output) + ".params.json")
        atomic_write_json(params_path, {
            'command': 'transform',
            'codahd_version': __version__,
            'timestamp': start_time.isoformat(),
            'input': str(args.input),
            'metadata': str(args.metadata) if args.metadata else None,
            'output': str(data_path),
            'transform': transform_config.to_dict(),
            'input_shape': list(matrix.shape),
            'output_shape': list(result.shape),
            'reference': _reference_summary(selection),
        })
        logger.info(f"Wrote parameters to {params_path}")

    except (CodaError, OSError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"ERROR: {e}")
        return 1

    elapsed = (datetime.now() - start_time).total_seconds()
    print(f"Transformed {matrix.n_features} features × {matrix.n_samples} samples "
          f"({transform_config.method.name}) in {elapsed:.1f}s -> {data_path}")
    return 0
