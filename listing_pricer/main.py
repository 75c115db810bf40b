"""
Main entry point for the listing price pipeline.

Usage:
    listing-pricer all                 # Run every stage
    listing-pricer generate            # Generate the synthetic listing table
    listing-pricer preprocess          # Clean and derive features
    listing-pricer explore             # EDA statistics, figures and report
    listing-pricer train               # Fit and evaluate both models
    listing-pricer predict             # Price new listings
    listing-pricer --help              # Show help
"""

import argparse
import logging
import sys
from pathlib import Path

from listing_pricer.config import (
    DATA_DIR,
    OUTPUT_DIR,
    RANDOM_STATE,
    VISUALIZATION_DIR,
    GeneratorConfig,
    PipelineConfig,
    PreprocessConfig,
    TrainingConfig,
)
from listing_pricer.exceptions import PipelineError
from listing_pricer.pipeline import STAGES, run_all, run_stage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Listing Price Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  listing-pricer all                              # Full run with defaults
  listing-pricer all --n-listings 500 --seed 7    # Smaller dataset, other seed
  listing-pricer predict --new-listings new.csv   # Price your own listings
        """
    )
    parser.add_argument(
        'command',
        choices=list(STAGES) + ['all'],
        help='Stage to run'
    )
    parser.add_argument('--data-dir', type=Path, default=Path(DATA_DIR), help='Directory for data tables')
    parser.add_argument('--output-dir', type=Path, default=Path(OUTPUT_DIR), help='Directory for models and reports')
    parser.add_argument('--viz-dir', type=Path, default=Path(VISUALIZATION_DIR), help='Directory for figures')
    parser.add_argument('--seed', type=int, default=RANDOM_STATE, help='Random seed')
    parser.add_argument('--n-listings', type=int, default=GeneratorConfig.n_listings,
                        help='Number of listings to generate')
    parser.add_argument('--validation-mode', choices=['warn', 'fail'], default='warn',
                        help='Report validation failures (warn) or stop on them (fail)')
    parser.add_argument('--new-listings', type=Path, default=None,
                        help='CSV of listings to price (defaults to the built-in sample)')
    parser.add_argument('--no-plots', action='store_true', help='Skip figure generation')
    return parser


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    """Builds the run configuration from parsed CLI arguments."""
    return PipelineConfig(
        data_dir=args.data_dir,
        output_dir=args.output_dir,
        viz_dir=args.viz_dir,
        new_listings_path=args.new_listings,
        generator=GeneratorConfig(n_listings=args.n_listings, seed=args.seed),
        preprocess=PreprocessConfig(validation_mode=args.validation_mode),
        training=TrainingConfig(seed=args.seed),
        make_plots=not args.no_plots,
    )


def main(argv=None) -> int:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format='%(message)s')
    args = build_parser().parse_args(argv)
    config = config_from_args(args)

    print("=" * 70)
    print(f"LISTING PRICE PIPELINE - {args.command.upper()}")
    print("=" * 70)

    try:
        if args.command == 'all':
            run_all(config)
        else:
            run_stage(args.command, config)
    except (PipelineError, FileNotFoundError) as e:
        print(f"\n✗ Pipeline stopped: {e}")
        return 1

    print("\n" + "=" * 70)
    print("✓ PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  Data: {config.data_dir}/")
    print(f"  Outputs: {config.output_dir}/")
    if config.make_plots:
        print(f"  Visualizations: {config.viz_dir}/")
    return 0


if __name__ == "__main__":
    sys.exit(main())
