"""
Command Line Interface for imgsizer.
"""

import argparse
import dataclasses
import logging
from typing import List, Optional

import urllib3

from .config import Config
from .derivative_writer import DerivativeWriter
from .exceptions import ConfigurationError, JoinFailure
from .orchestrator import Orchestrator
from .reporter import Reporter
from .run_progress import RunProgress
from .s3_client import S3Client
from .scanner import Scanner
from .server import create_app, serve
from .sinks import build_sinks


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('imgsizer')


def load_config(path: Optional[str], logger: logging.Logger) -> Config:
    """
    Load and validate config.toml.

    Raises:
        ConfigurationError: Missing, unparsable or invalid configuration
    """
    config = Config.load(path)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        raise ConfigurationError("Configuration invalid")

    logger.debug(f"Config loaded from {config.dir}")
    return config


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    logger = setup_logging(args.verbose)
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    try:
        config = load_config(args.config, logger)
        context = config.context()
        if args.parallel is not None:
            if args.parallel < 1:
                raise ConfigurationError(f"--parallel must be at least 1, got {args.parallel}")
            context = dataclasses.replace(context, chunk_size=args.parallel)

        sinks = build_sinks(config, create_bucket=True, logger=logger)
        if not len(sinks):
            logger.warning("No export sink enabled, derivatives will not be saved")
        else:
            logger.info(f"Exporting to {', '.join(sinks.names)}")

        queue = Scanner(config, logger=logger).scan()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    progress = None
    if not args.quiet:
        progress = RunProgress(show_files=args.show_files, logger=logger)

    orchestrator = Orchestrator(
        context=context,
        sinks=sinks,
        writer=DerivativeWriter(logger=logger),
        progress=progress,
        logger=logger
    )

    try:
        stats = orchestrator.run_all(queue, shapes=not args.no_shapes)
    except JoinFailure as e:
        logger.error(f"{e}")
        return 2
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    reporter = Reporter(logger=logger)
    if args.quiet:
        reporter.log_entries(stats)
    else:
        reporter.report(stats, len(queue))

    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Execute serve command."""
    logger = setup_logging(args.verbose)
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    try:
        config = load_config(args.config, logger)
        server_config = config.require_server()
        if not config.require_export().s3:
            raise ConfigurationError("Server only reads objects from S3, enable [export] s3")

        s3_config = config.require_s3()
        errors = s3_config.validate()
        if errors:
            raise ConfigurationError("; ".join(errors))

        client = S3Client(s3_config, logger)
        client.ensure_bucket(create=False)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    host = args.host or server_config.host
    port = args.port or server_config.port

    try:
        serve(create_app(client), host, port, debug=args.verbose)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='imgsizer',
        description='Resize image trees into fixed derivative sets',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Workflow:
  1. Run:   imgsizer run /path/to/images     (dir holding config.toml)
  2. Serve: imgsizer serve /path/to/images   (read derivatives back from S3)

Credentials for [s3] can come from S3_ACCESS_KEY / S3_SECRET_KEY.
"""
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Run command
    run_parser = subparsers.add_parser('run', help='Resize every image next to config.toml')
    run_parser.add_argument('config', nargs='?', help='config.toml or the directory holding it')
    run_parser.add_argument('-p', '--parallel', type=int, metavar='N',
                            help='Images processed concurrently (overrides parallel_img_max)')
    run_parser.add_argument('--no-shapes', action='store_true', help='Skip the shape pass')
    run_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    run_parser.add_argument('--show-files', action='store_true',
                            help='Print each derivative as its chunk completes')
    run_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    # Serve command
    serve_parser = subparsers.add_parser('serve', help='Serve derivatives from the object store')
    serve_parser.add_argument('config', nargs='?', help='config.toml or the directory holding it')
    serve_parser.add_argument('--host', help='Bind address (overrides [server] host)')
    serve_parser.add_argument('--port', type=int, help='Port (overrides [server] port)')
    serve_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'run':
        return cmd_run(parsed_args)
    elif parsed_args.command == 'serve':
        return cmd_serve(parsed_args)

    return 1
