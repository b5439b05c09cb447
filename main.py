"""
Command line runner for Concord.

Produces and verifies cross-implementation test vectors:
1. produce: write a vector file with fresh keys for ECIES, Shamir and Paillier
2. verify: check a vector file written by any implementation
"""

import os
import sys
import time
import argparse
from typing import List, Optional

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import get_config, CompatConfig
from crypto.errors import CompatError
from protocols import SCHEMES, VectorProducer, VectorVerifier, VerificationReport
from utils import setup_logging, ResultsSaver, format_time


class ConcordRun:
    """
    One producer or verifier invocation.

    Holds the configuration and the logger, and times each step.
    """

    def __init__(self, config: CompatConfig):
        self.config = config
        self.logger = setup_logging(
            config.log_dir,
            log_level=config.log_level,
            experiment_name='concord'
        )

    def produce(self, output: str) -> int:
        """Write a vector file to `output`."""
        start = time.time()
        producer = VectorProducer(
            self.config.vectors,
            shamir_config=self.config.shamir,
            ecies_config=self.config.ecies,
            paillier_config=self.config.paillier
        )
        self.logger.info(f"Producing vectors for: {', '.join(self.config.vectors.schemes)}")

        vector_file = producer.produce()
        vector_file.save(output)

        self.logger.info(
            f"Wrote {len(vector_file.vectors)} vectors to {output} "
            f"in {format_time(time.time() - start)}"
        )
        return 0

    def verify(self, path: str, save_report: bool = False) -> VerificationReport:
        """Verify the vector file at `path`."""
        start = time.time()
        self.logger.info(f"Verifying {path}")

        report = VectorVerifier(self.config.vectors.encoding).verify_file(path)
        for line in report.summary():
            self.logger.info(line)
        self.logger.info(f"Verification took {format_time(time.time() - start)}")

        if save_report:
            saver = ResultsSaver(self.config.output_dir)
            name = os.path.splitext(os.path.basename(path))[0] + '_report'
            self.logger.info(f"Report saved to: {saver.save_json(report.to_dict(), name)}")

        return report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Concord: cross-implementation test vectors for ECIES, Shamir and Paillier'
    )
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--log-dir', type=str, default=None,
                        help='Also write logs to a timestamped file here')

    subparsers = parser.add_subparsers(dest='command', required=True)

    produce = subparsers.add_parser('produce', help='Write a test vector file')
    produce.add_argument('--output', '-o', type=str, required=True,
                         help='Vector file to write')
    produce.add_argument('--schemes', nargs='+', choices=list(SCHEMES), default=list(SCHEMES),
                         help='Schemes to produce vectors for')
    produce.add_argument('--paillier-bits', type=int, default=None,
                         help='Paillier modulus size for the vector key pair')
    produce.add_argument('--encoding', type=str, default='hex', choices=['hex', 'base64'],
                         help='Byte field encoding')

    verify = subparsers.add_parser('verify', help='Verify a test vector file')
    verify.add_argument('file', type=str, help='Vector file to verify')
    verify.add_argument('--save-report', action='store_true',
                        help='Save the verification report as JSON')
    verify.add_argument('--output-dir', type=str, default='./outputs',
                        help='Directory for the saved report')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    if args.command == 'produce':
        config = get_config(
            schemes=args.schemes,
            paillier_bits=args.paillier_bits,
            encoding=args.encoding,
            log_level=args.log_level
        )
    else:
        config = get_config(log_level=args.log_level, output_dir=args.output_dir)
    config.log_dir = args.log_dir

    run = ConcordRun(config)
    try:
        if args.command == 'produce':
            return run.produce(args.output)
        return run.verify(args.file, save_report=args.save_report).exit_code
    except (CompatError, OSError) as e:
        run.logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
